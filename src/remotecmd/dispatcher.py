"""
Command registry and dispatcher.

The registry is an explicit mapping from type identifier to factory. Nothing
is resolved by name at runtime: a type id that was never registered is
rejected before anything is constructed.
"""

from __future__ import annotations

import logging
from typing import Callable

from remotecmd._types import ArgumentNode, CommandEnvelope
from remotecmd.commands import BUILTIN_COMMANDS, Command
from remotecmd.config import Settings
from remotecmd.results import CommandResult

logger = logging.getLogger(__name__)

CommandFactory = Callable[[Settings], Command]


class CommandRegistry:
    """Registry of command factories keyed by type id."""

    def __init__(self) -> None:
        self._factories: dict[str, CommandFactory] = {}

    def register(self, type_id: str, factory: CommandFactory) -> None:
        """
        Register a command factory.

        Args:
            type_id: Identifier carried in envelopes.
            factory: Callable building the command from host settings.

        Raises:
            ValueError: If the type id is already registered.
        """
        if type_id in self._factories:
            raise ValueError(f"Command type '{type_id}' is already registered")
        self._factories[type_id] = factory
        logger.debug(f"Registered command type {type_id}")

    def unregister(self, type_id: str) -> None:
        self._factories.pop(type_id, None)

    def get(self, type_id: str) -> CommandFactory | None:
        return self._factories.get(type_id)

    def has(self, type_id: str) -> bool:
        return type_id in self._factories

    def type_ids(self) -> list[str]:
        return list(self._factories)

    def clear(self) -> None:
        """Remove every registration."""
        self._factories.clear()

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._factories

    def __len__(self) -> int:
        return len(self._factories)


def default_registry() -> CommandRegistry:
    """Return a registry holding every built-in command."""
    registry = CommandRegistry()
    for command_class in BUILTIN_COMMANDS:
        registry.register(command_class.type_id, command_class)
    return registry


class Dispatcher:
    """
    Resolve, validate and execute commands.

    dispatch() never raises: unknown types, construction errors and argument
    errors all come back as FAILURE results.

    Example:
        >>> dispatcher = Dispatcher(Settings.from_env())
        >>> args = ArgumentNode.root()
        >>> args.add("directory", "/tmp")
        >>> result = await dispatcher.dispatch("remotecmd.FileLister", args)
    """

    def __init__(self, settings: Settings | None = None, registry: CommandRegistry | None = None) -> None:
        self.settings = settings if settings is not None else Settings()
        self.registry = registry if registry is not None else default_registry()

    async def dispatch(self, type_id: str, arguments: ArgumentNode) -> CommandResult:
        """
        Run the command registered under ``type_id``.

        Args:
            type_id: Registered command identifier.
            arguments: The command's argument tree.

        Returns:
            The command's result, or a FAILURE result if the type is unknown
            or the command could not be built or initialized.
        """
        factory = self.registry.get(type_id)
        if factory is None:
            logger.warning(f"Rejected unknown command type {type_id}")
            return CommandResult.failure(f"unknown command type: {type_id}")

        try:
            command = factory(self.settings)
            command.init(arguments)
        except Exception as e:
            logger.warning(f"Could not initialize {type_id}: {e}")
            result_class = getattr(factory, "result_class", CommandResult)
            return result_class.from_exception(e)

        logger.info(f"Executing {type_id}")
        result = await command.execute()
        logger.info(f"{type_id} finished with {result.status.name}")
        return result

    async def handle(self, envelope: CommandEnvelope) -> CommandResult:
        """Dispatch an envelope's type and arguments."""
        return await self.dispatch(envelope.type_id, envelope.arguments)
