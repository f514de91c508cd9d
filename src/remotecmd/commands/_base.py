"""
Abstract base class for all commands.

Every built-in command (virtual hosts, server control, files, network)
implements this interface. The dispatcher constructs a command with the host
settings, calls init() with the argument tree, then awaits execute().
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import ClassVar

from remotecmd._types import ArgumentNode, CommandEnvelope, Credentials
from remotecmd.config import Settings
from remotecmd.errors import ValidationError
from remotecmd.results import CommandResult

logger = logging.getLogger(__name__)


class Command(ABC):
    """
    Abstract base for all commands.

    Subclasses set ``type_id`` to the identifier sent on the wire and
    ``result_class`` to the result variant they produce.
    """

    type_id: ClassVar[str]
    result_class: ClassVar[type[CommandResult]] = CommandResult

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings if settings is not None else Settings()

    @abstractmethod
    def init(self, arguments: ArgumentNode) -> None:
        """
        Parse and validate the argument tree.

        Args:
            arguments: The ``processor-arguments`` node of an envelope.

        Raises:
            ValidationError: If a required argument is missing or invalid.
        """
        ...

    @abstractmethod
    async def run(self) -> CommandResult:
        """
        Perform the command's work.

        May raise; execute() turns exceptions into FAILURE results.
        """
        ...

    @abstractmethod
    def to_arguments(self) -> ArgumentNode:
        """Build the argument tree that init() on the receiving side accepts."""
        ...

    async def execute(self) -> CommandResult:
        """
        Run the command and report the outcome.

        Never raises: any exception from run() becomes a FAILURE result with
        the exception message as reason.
        """
        try:
            return await self.run()
        except Exception as e:
            logger.exception(f"{self.type_id} failed: {e}")
            return self.result_class.from_exception(e)

    def create_envelope(self, credentials: Credentials | None = None) -> CommandEnvelope:
        """Wrap this command's arguments in an envelope addressed to its type."""
        return CommandEnvelope(
            type_id=self.type_id,
            arguments=self.to_arguments(),
            credentials=credentials or Credentials(),
        )


def required_value(node: ArgumentNode, name: str, message: str | None = None) -> str:
    """
    Return the value of a required child argument.

    Raises:
        ValidationError: If the child is missing or empty.
    """
    value = node.child_value(name)
    if value is None:
        raise ValidationError(message or f"{name} not set")
    return value


def required_values(node: ArgumentNode, name: str) -> list[str]:
    """
    Return the values of every child named ``name``; at least one is required.

    Raises:
        ValidationError: If no child with a value is present.
    """
    values = [child.value for child in node.children_named(name) if child.value is not None]
    if not values:
        raise ValidationError(f"at least one <{name}> is required")
    return values
