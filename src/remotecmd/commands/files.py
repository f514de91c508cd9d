"""
Filesystem commands: create, copy, rename, remove, list, read and write.

These run directly in the request task; none of them takes a lock.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import os
import shutil
from pathlib import Path

from remotecmd._types import ArgumentNode
from remotecmd.commands._base import Command, required_value, required_values
from remotecmd.config import Settings
from remotecmd.errors import ValidationError
from remotecmd.results import CommandResult, FileContentResult, FileListingResult, Status

logger = logging.getLogger(__name__)


def _paths(arguments: ArgumentNode, name: str, message: str) -> list[str]:
    paths = []
    for node in arguments.children_named(name):
        if node.value is None:
            raise ValidationError(message)
        paths.append(node.value)
    return paths


def _pairs(arguments: ArgumentNode, element: str) -> list[tuple[Path, Path]]:
    pairs = []
    for node in arguments.children_named(element):
        source = required_value(node, "from", f"{element} element <from> is required")
        target = required_value(node, "to", f"{element} element <to> is required")
        pairs.append((Path(source), Path(target)))
    return pairs


def _pairs_to_arguments(element: str, pairs: list[tuple[Path, Path]]) -> ArgumentNode:
    args = ArgumentNode.root()
    for source, target in pairs:
        node = args.add(element)
        node.add("from", str(source))
        node.add("to", str(target))
    return args


def _copy_into(source: Path, target: Path) -> Path:
    target.mkdir(parents=True, exist_ok=True)
    destination = target / source.name
    if source.is_dir():
        shutil.copytree(source, destination, dirs_exist_ok=True)
    else:
        shutil.copy2(source, destination)
    return destination


# newline="" keeps line endings byte for byte.
def _read_exact(path: Path) -> str:
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def _write_exact(path: Path, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


class DirectoryCreator(Command):
    """Create each ``<directory>``, including missing parents."""

    type_id = "remotecmd.DirectoryCreator"

    def __init__(self, settings: Settings | None = None, *, directories: list[str] | None = None) -> None:
        super().__init__(settings)
        self.directories = list(directories or [])

    def init(self, arguments: ArgumentNode) -> None:
        self.directories = _paths(arguments, "directory", "Directory cannot be null or an empty string")

    def to_arguments(self) -> ArgumentNode:
        args = ArgumentNode.root()
        for directory in self.directories:
            args.add("directory", directory)
        return args

    async def run(self) -> CommandResult:
        for directory in self.directories:
            Path(directory).mkdir(parents=True, exist_ok=True)
            logger.debug(f"Created directory {directory}")
        return CommandResult()


class FileCopier(Command):
    """
    Copy files or directory trees into target directories.

    Arguments::

        <copy><from>/srv/a.txt</from><to>/backup</to></copy>

    ``to`` names the directory the source is copied into. It is created if
    missing and must not be an existing regular file.
    """

    type_id = "remotecmd.FileCopier"

    def __init__(self, settings: Settings | None = None, *, copies: list[tuple[Path, Path]] | None = None) -> None:
        super().__init__(settings)
        self.copies = list(copies or [])

    def init(self, arguments: ArgumentNode) -> None:
        self.copies = _pairs(arguments, "copy")
        for _, target in self.copies:
            if target.exists() and not target.is_dir():
                raise ValidationError("copy element <to> must be a directory")

    def to_arguments(self) -> ArgumentNode:
        return _pairs_to_arguments("copy", self.copies)

    async def run(self) -> CommandResult:
        for source, target in self.copies:
            destination = await asyncio.to_thread(_copy_into, source, target)
            logger.debug(f"Copied {source} to {destination}")
        return CommandResult()


class FileRenamer(Command):
    """
    Rename files or directories.

    An existing ``to`` must be the same kind (file or directory) as ``from``.
    Every rename is attempted; if any fails the result is FAILURE.
    """

    type_id = "remotecmd.FileRenamer"

    def __init__(self, settings: Settings | None = None, *, renames: list[tuple[Path, Path]] | None = None) -> None:
        super().__init__(settings)
        self.renames = list(renames or [])

    def init(self, arguments: ArgumentNode) -> None:
        self.renames = _pairs(arguments, "rename")
        for source, target in self.renames:
            if target.exists() and (source.is_file() != target.is_file() or source.is_dir() != target.is_dir()):
                raise ValidationError("rename element <to> must be the same type as <from>")

    def to_arguments(self) -> ArgumentNode:
        return _pairs_to_arguments("rename", self.renames)

    async def run(self) -> CommandResult:
        failed = False
        for source, target in self.renames:
            try:
                os.rename(source, target)
            except OSError as e:
                logger.warning(f"Could not rename {source} to {target}: {e}")
                failed = True
        if failed:
            return CommandResult.failure("An error occurred renaming the file")
        return CommandResult()


class FileRemover(Command):
    """Delete each ``<file>`` that exists. Directories must be empty."""

    type_id = "remotecmd.FileRemover"

    def __init__(self, settings: Settings | None = None, *, files: list[str] | None = None) -> None:
        super().__init__(settings)
        self.files = list(files or [])

    def init(self, arguments: ArgumentNode) -> None:
        self.files = _paths(arguments, "file", "File path cannot be null or an empty string")

    def to_arguments(self) -> ArgumentNode:
        args = ArgumentNode.root()
        for file in self.files:
            args.add("file", file)
        return args

    async def run(self) -> CommandResult:
        for file in self.files:
            path = Path(file)
            if path.is_dir() and not path.is_symlink():
                path.rmdir()
            elif path.exists() or path.is_symlink():
                path.unlink()
        return CommandResult()


class FileLister(Command):
    """
    List directories, optionally filtered by wildcard patterns.

    Arguments::

        <directory>/var/log</directory>
        <directory filter="*.conf">/etc/httpd</directory>

    Patterns use shell wildcards and ignore case. A directory that does not
    exist lists as empty.
    """

    type_id = "remotecmd.FileLister"
    result_class = FileListingResult

    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__(settings)
        self.directories: list[str] = []
        self.filters: dict[str, list[str]] = {}

    def init(self, arguments: ArgumentNode) -> None:
        for node in arguments.children_named("directory"):
            self.add_directory(node.value, node.attributes.get("filter"))

    def add_directory(self, directory: str | None, pattern: str | None = None) -> None:
        """Add a directory to list, with an optional wildcard filter."""
        if directory is None:
            return
        if directory not in self.directories:
            self.directories.append(directory)
        if pattern:
            self.filters.setdefault(directory, []).append(pattern)

    def to_arguments(self) -> ArgumentNode:
        args = ArgumentNode.root()
        for directory in self.directories:
            patterns = self.filters.get(directory)
            if not patterns:
                args.add("directory", directory)
            for pattern in patterns or []:
                args.add("directory", directory, filter=pattern)
        return args

    async def run(self) -> FileListingResult:
        result = FileListingResult()
        for directory in self.directories:
            path = Path(directory)
            if not path.is_dir():
                continue
            entries = sorted(path.iterdir())
            for pattern in self.filters.get(directory) or [None]:
                for entry in entries:
                    if pattern is not None and not fnmatch.fnmatchcase(entry.name.lower(), pattern.lower()):
                        continue
                    stat = entry.stat()
                    result.add(directory, entry.name, int(stat.st_mtime * 1000), stat.st_size)
        return result


class FileReader(Command):
    """Return the content of a single ``<file>``."""

    type_id = "remotecmd.FileReader"
    result_class = FileContentResult

    def __init__(self, settings: Settings | None = None, *, file: str | None = None) -> None:
        super().__init__(settings)
        self.file = file

    def init(self, arguments: ArgumentNode) -> None:
        self.file = required_value(arguments, "file")

    def to_arguments(self) -> ArgumentNode:
        args = ArgumentNode.root()
        args.add("file", self.file)
        return args

    async def run(self) -> FileContentResult:
        if self.file is None:
            raise ValidationError("file not set")
        content = await asyncio.to_thread(_read_exact, Path(self.file))
        return FileContentResult(status=Status.SUCCESS, content=content)


class FileWriter(Command):
    """Write ``<content>`` to every ``<file>``, replacing what was there."""

    type_id = "remotecmd.FileWriter"

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        content: str | None = None,
        files: list[str] | None = None,
    ) -> None:
        super().__init__(settings)
        self.content = content
        self.files = list(files or [])

    def init(self, arguments: ArgumentNode) -> None:
        self.content = arguments.child_value("content")
        self.files = required_values(arguments, "file")

    def to_arguments(self) -> ArgumentNode:
        args = ArgumentNode.root()
        args.add("content", self.content)
        for file in self.files:
            args.add("file", file)
        return args

    async def run(self) -> CommandResult:
        for file in self.files:
            await asyncio.to_thread(_write_exact, Path(file), self.content or "")
        return CommandResult()
