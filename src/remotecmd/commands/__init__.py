"""Built-in commands."""

from remotecmd.commands._base import Command
from remotecmd.commands.files import (
    DirectoryCreator,
    FileCopier,
    FileLister,
    FileReader,
    FileRemover,
    FileRenamer,
    FileWriter,
)
from remotecmd.commands.network import IpAddressInstaller
from remotecmd.commands.server_control import ServerAction, ServerControl
from remotecmd.commands.vhost import ApacheVirtualHostEditor, VirtualHost

BUILTIN_COMMANDS: tuple[type[Command], ...] = (
    ApacheVirtualHostEditor,
    ServerControl,
    IpAddressInstaller,
    DirectoryCreator,
    FileCopier,
    FileRenamer,
    FileRemover,
    FileLister,
    FileReader,
    FileWriter,
)

__all__ = [
    "BUILTIN_COMMANDS",
    "ApacheVirtualHostEditor",
    "Command",
    "DirectoryCreator",
    "FileCopier",
    "FileLister",
    "FileReader",
    "FileRemover",
    "FileRenamer",
    "FileWriter",
    "IpAddressInstaller",
    "ServerAction",
    "ServerControl",
    "VirtualHost",
]
