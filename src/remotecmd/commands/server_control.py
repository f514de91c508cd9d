"""
Lifecycle control for a managed server process.

The server is driven entirely through configured command lines: start, stop,
kill, and a check command that prints something only while the server runs.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum

from remotecmd import locking
from remotecmd._types import ArgumentNode
from remotecmd.commands._base import Command
from remotecmd.config import Settings
from remotecmd.errors import ValidationError
from remotecmd.process import check_call, run_process
from remotecmd.results import CommandResult

logger = logging.getLogger(__name__)


class ServerAction(Enum):
    """Lifecycle transitions a ServerControl command can request."""

    START = "start"
    STOP = "stop"
    RESTART = "restart"
    CHECK = "check"

    @classmethod
    def parse(cls, value: str | None) -> ServerAction:
        """
        Parse an action name, ignoring case.

        Raises:
            ValidationError: If the name is not a known action.
        """
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ValidationError(f"command {value} is invalid") from None


class ServerControl(Command):
    """
    Start, stop, restart or check the managed server.

    Arguments::

        <command>restart</command>

    CHECK runs without the lock and reports the state in the result reason.
    The other actions hold the server lock for their whole duration.
    """

    type_id = "remotecmd.ServerControl"

    def __init__(self, settings: Settings | None = None, *, action: ServerAction | None = None) -> None:
        super().__init__(settings)
        self.action = action

    def init(self, arguments: ArgumentNode) -> None:
        self.action = ServerAction.parse(arguments.child_value("command"))

    def to_arguments(self) -> ArgumentNode:
        args = ArgumentNode.root()
        if self.action is not None:
            args.add("command", self.action.value)
        return args

    async def run(self) -> CommandResult:
        if self.action is None:
            raise ValidationError("command not set")

        if self.action is ServerAction.CHECK:
            running = await self.is_running()
            return CommandResult(reason="Server is running" if running else "Server is not running")

        owner = str(int(time.time() * 1000))
        async with locking.hold(
            self.settings.require("server_lock_file"),
            owner,
            max_wait=self.settings.lock_max_wait,
            poll_interval=self.settings.lock_poll_interval,
        ):
            if self.action in (ServerAction.STOP, ServerAction.RESTART):
                await self.stop()
            if self.action in (ServerAction.START, ServerAction.RESTART):
                await self.start()
        return CommandResult()

    async def is_running(self) -> bool:
        """Return True if the check command printed anything but line breaks."""
        result = await run_process(self.settings.require("server_check_command"))
        return bool("".join(result.stdout.splitlines()))

    async def start(self) -> None:
        """
        Run the start command.

        Raises:
            ResourceError: If the start command exits nonzero.
        """
        await check_call(self.settings.require("server_start_command"))
        logger.info("Server started")

    async def stop(self) -> None:
        """
        Run the stop command and wait for the server to go away.

        The check command is polled every ``stop_check_interval`` seconds for
        up to ``stop_grace_period`` seconds. If the server is still running
        after that, the kill command is run once. Its exit status is not
        checked and the server is not polled again.

        Raises:
            ResourceError: If the stop command exits nonzero.
        """
        await check_call(self.settings.require("server_stop_command"))
        kill_command = self.settings.require("server_kill_command")

        loop = asyncio.get_running_loop()
        started = loop.time()
        while await self.is_running():
            if loop.time() - started >= self.settings.stop_grace_period:
                logger.warning(
                    f"Server still running {self.settings.stop_grace_period:g}s after stop, killing it"
                )
                await run_process(kill_command)
                return
            await asyncio.sleep(self.settings.stop_check_interval)
        logger.info("Server stopped")
