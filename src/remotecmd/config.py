"""
Host-side settings for the built-in commands.

Commands read file locations and external command lines from a Settings
instance. Settings can be built directly or from REMOTECMD_* environment
variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

from remotecmd.errors import ConfigurationError

ENV_PREFIX = "REMOTECMD_"


@dataclass
class Settings:
    """
    Configuration shared by every command the dispatcher constructs.

    Attributes:
        vhost_config_file: Apache configuration file edited by the virtual host editor.
        vhost_lock_file: Lock file guarding the config file. Defaults to the config
            file path with a ``.lck`` suffix.
        apache_restart_command: Command line that restarts Apache.
        server_lock_file: Lock file guarding server lifecycle transitions.
        server_start_command: Command line that starts the managed server.
        server_stop_command: Command line that stops the managed server.
        server_kill_command: Command line that forcefully kills the managed server.
        server_check_command: Command line that prints output only while the server runs.
        network_scripts_dir: Directory holding ``ifcfg-*`` interface files.
        ifup_command: Command line used to boot a new interface.
        lock_max_wait: Seconds to wait for a lock before giving up.
        lock_poll_interval: Seconds between lock attempts.
        stop_grace_period: Seconds to wait for the server to stop before killing it.
        stop_check_interval: Seconds between running checks while stopping.
    """

    vhost_config_file: Path | None = None
    vhost_lock_file: Path | None = None
    apache_restart_command: str | None = None
    server_lock_file: Path | None = None
    server_start_command: str | None = None
    server_stop_command: str | None = None
    server_kill_command: str | None = None
    server_check_command: str | None = None
    network_scripts_dir: Path = Path("/etc/sysconfig/network-scripts")
    ifup_command: str = "sudo /sbin/ifup"
    lock_max_wait: float = 30.0
    lock_poll_interval: float = 10.0
    stop_grace_period: float = 15.0
    stop_check_interval: float = 1.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, str) and f.name.endswith(("_file", "_dir")):
                setattr(self, f.name, Path(value))
        if self.vhost_lock_file is None and self.vhost_config_file is not None:
            self.vhost_lock_file = self.vhost_config_file.with_name(
                self.vhost_config_file.name + ".lck"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Build settings from ``REMOTECMD_<FIELD>`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Raises:
            ConfigurationError: If a numeric setting cannot be parsed.
        """
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            if isinstance(f.default, float):
                try:
                    values[f.name] = float(raw)
                except ValueError:
                    raise ConfigurationError(f"{ENV_PREFIX}{f.name.upper()} must be a number") from None
            else:
                values[f.name] = raw
        return cls(**values)

    def require(self, name: str) -> Any:
        """
        Return a setting that a command cannot work without.

        Raises:
            ConfigurationError: If the setting is not configured.
        """
        value = getattr(self, name)
        if value is None or value == "":
            raise ConfigurationError(f"{name} not set")
        return value
