"""
Top-level facade for remotecmd.
"""

from remotecmd._types import ArgumentNode, CommandEnvelope, Credentials
from remotecmd.api import create_dispatcher, process_text
from remotecmd.client import RemoteCommandClient
from remotecmd.commands import (
    ApacheVirtualHostEditor,
    Command,
    DirectoryCreator,
    FileCopier,
    FileLister,
    FileReader,
    FileRemover,
    FileRenamer,
    FileWriter,
    IpAddressInstaller,
    ServerAction,
    ServerControl,
    VirtualHost,
)
from remotecmd.config import Settings
from remotecmd.dispatcher import CommandRegistry, Dispatcher, default_registry
from remotecmd.errors import (
    ConfigurationError,
    ErrorKind,
    LockTimeoutError,
    ProtocolError,
    RemoteCommandError,
    ResourceError,
    ValidationError,
)
from remotecmd.results import (
    CommandResult,
    FileContentResult,
    FileEntry,
    FileListingResult,
    Status,
)

__version__ = "0.1.0"

__all__ = [
    # Envelopes
    "ArgumentNode",
    "CommandEnvelope",
    "Credentials",
    # Results
    "CommandResult",
    "FileContentResult",
    "FileEntry",
    "FileListingResult",
    "Status",
    # Dispatch
    "CommandRegistry",
    "Dispatcher",
    "Settings",
    "create_dispatcher",
    "default_registry",
    "process_text",
    # Transport
    "RemoteCommandClient",
    # Commands
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
    # Errors
    "ConfigurationError",
    "ErrorKind",
    "LockTimeoutError",
    "ProtocolError",
    "RemoteCommandError",
    "ResourceError",
    "ValidationError",
]
