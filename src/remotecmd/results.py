"""
Result variants returned by commands.

The set of variants is closed: RESULT_TYPES maps the subtype identifier sent
on the wire to the class that reconstructs it.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, ClassVar

from remotecmd.errors import ResourceError


class Status(IntEnum):
    """Outcome of a command. The numeric values are the wire codes."""

    FAILURE = 0
    SUCCESS = 1


@dataclass(slots=True)
class CommandResult:
    """
    Result of a command execution.

    Attributes:
        status: SUCCESS or FAILURE.
        reason: Optional human-readable explanation.
        trace: Optional diagnostic detail, such as a traceback or process output.
    """

    result_type: ClassVar[str] = "remotecmd.CommandResult"

    status: Status = Status.SUCCESS
    reason: str | None = None
    trace: str | None = None

    @property
    def success(self) -> bool:
        """Return True if the command succeeded."""
        return self.status == Status.SUCCESS

    @property
    def details(self) -> Any:
        """Variant-specific payload; the base variant has none."""
        return None

    @classmethod
    def failure(cls, reason: str, trace: str | None = None) -> CommandResult:
        """Build a FAILURE result of this variant."""
        return cls(status=Status.FAILURE, reason=reason, trace=trace)

    @classmethod
    def from_exception(cls, exc: BaseException) -> CommandResult:
        """
        Convert an exception into a FAILURE result.

        The reason is the exception message. The trace is the captured process
        output for resource errors that carry one, otherwise the traceback.
        """
        reason = str(exc) or type(exc).__name__
        if isinstance(exc, ResourceError) and exc.output:
            trace = exc.output
        else:
            trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return cls.failure(reason, trace)


@dataclass(frozen=True, slots=True)
class FileEntry:
    """One file in a directory listing."""

    name: str
    last_modified_ms: int
    size: int

    @property
    def last_modified(self) -> datetime:
        return datetime.fromtimestamp(self.last_modified_ms / 1000, tz=timezone.utc)


@dataclass(slots=True)
class FileListingResult(CommandResult):
    """Result carrying directory listings, keyed by directory path."""

    result_type: ClassVar[str] = "remotecmd.FileListingResult"

    listings: dict[str, list[FileEntry]] = field(default_factory=dict)

    @property
    def details(self) -> dict[str, list[FileEntry]]:
        return self.listings

    def add(self, directory: str, name: str, last_modified_ms: int, size: int) -> None:
        """Record a file under the given directory."""
        self.listings.setdefault(directory, []).append(FileEntry(name, last_modified_ms, size))

    def files(self, directory: str) -> list[FileEntry]:
        return self.listings.get(directory, [])


@dataclass(slots=True)
class FileContentResult(CommandResult):
    """Result carrying the content of a single file."""

    result_type: ClassVar[str] = "remotecmd.FileContentResult"

    content: str | None = None

    @property
    def details(self) -> str | None:
        return self.content


RESULT_TYPES: dict[str, type[CommandResult]] = {
    cls.result_type: cls for cls in (CommandResult, FileListingResult, FileContentResult)
}
