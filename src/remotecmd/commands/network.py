"""
IP alias installation on the primary interface.

Each address gets the next free ``eth0:N`` alias, an ``ifcfg-eth0:N`` file
cloned from ``ifcfg-eth0``, and is brought up with ifup.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from remotecmd._types import ArgumentNode
from remotecmd.commands._base import Command, required_values
from remotecmd.config import Settings
from remotecmd.errors import ResourceError
from remotecmd.process import check_call
from remotecmd.results import CommandResult

logger = logging.getLogger(__name__)

BASE_DEVICE = "eth0"


def next_device_id(scripts_dir: Path, base: str = BASE_DEVICE) -> int:
    """
    Return the next free alias number for ``base``.

    ``ifcfg-eth0`` itself counts as -1, so the first alias is ``eth0:0``.
    """
    suffixes = [-1]
    for entry in scripts_dir.glob(f"ifcfg-{base}*"):
        _, sep, suffix = entry.name.partition(":")
        if sep and suffix.isdigit():
            suffixes.append(int(suffix))
    return max(suffixes) + 1


def rewrite_interface_config(lines: Iterable[str], device: str, ip: str) -> list[str]:
    """Copy interface config lines, replacing the DEVICE and IPADDR keys."""
    out = []
    for line in lines:
        if line == "":
            continue
        if line.startswith("DEVICE"):
            out.append(f"DEVICE={device}")
        elif line.startswith("IPADDR"):
            out.append(f"IPADDR={ip}")
        else:
            out.append(line)
    return out


class IpAddressInstaller(Command):
    """
    Install one alias interface per ``<ip>`` argument.

    Arguments::

        <ip>192.168.0.10</ip>
        <ip>192.168.0.11</ip>
    """

    type_id = "remotecmd.IpAddressInstaller"

    def __init__(self, settings: Settings | None = None, *, ips: list[str] | None = None) -> None:
        super().__init__(settings)
        self.ips = list(ips or [])

    def init(self, arguments: ArgumentNode) -> None:
        self.ips = required_values(arguments, "ip")

    def to_arguments(self) -> ArgumentNode:
        args = ArgumentNode.root()
        for ip in self.ips:
            args.add("ip", ip)
        return args

    async def run(self) -> CommandResult:
        for ip in self.ips:
            await self.install(ip)
        return CommandResult()

    async def install(self, ip: str) -> str:
        """
        Write the alias config for ``ip`` and bring the interface up.

        Returns:
            The device name, such as ``eth0:3``.

        Raises:
            ResourceError: If the base config is missing or ifup fails.
        """
        scripts_dir = Path(self.settings.network_scripts_dir)
        base_config = scripts_dir / f"ifcfg-{BASE_DEVICE}"
        if not base_config.exists():
            raise ResourceError(f"interface config file: {base_config} does not exist")

        device = f"{BASE_DEVICE}:{next_device_id(scripts_dir)}"
        lines = rewrite_interface_config(base_config.read_text(encoding="utf-8").splitlines(), device, ip)
        (scripts_dir / f"ifcfg-{device}").write_text("".join(line + "\n" for line in lines), encoding="utf-8")
        logger.info(f"Configured {device} for {ip}")

        await check_call(f"{self.settings.ifup_command} {device} boot")
        return device
