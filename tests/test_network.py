"""Tests for the IP alias installer."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from remotecmd import ArgumentNode, IpAddressInstaller, Settings, ValidationError
from remotecmd.commands.network import next_device_id, rewrite_interface_config

BASE_CONFIG = """DEVICE=eth0
BOOTPROTO=static

IPADDR=192.168.0.2
NETMASK=255.255.255.0
ONBOOT=yes
"""


@pytest.fixture
def network_settings(temp_dir: Path, make_script: Callable[[str, str], str]) -> Settings:
    scripts = temp_dir / "network-scripts"
    scripts.mkdir()
    (scripts / "ifcfg-eth0").write_text(BASE_CONFIG)
    ifup = make_script("ifup.sh", f'echo "$@" >> {temp_dir / "ifup.log"}')
    return Settings(network_scripts_dir=scripts, ifup_command=ifup)


class TestHelpers:
    """Tests for the device numbering and config rewrite helpers."""

    def test_first_alias_is_zero(self, temp_dir: Path) -> None:
        (temp_dir / "ifcfg-eth0").write_text("")
        assert next_device_id(temp_dir) == 0

    def test_next_after_highest(self, temp_dir: Path) -> None:
        for name in ("ifcfg-eth0", "ifcfg-eth0:0", "ifcfg-eth0:7", "ifcfg-eth0:2", "ifcfg-eth1:9", "ifcfg-lo"):
            (temp_dir / name).write_text("")
        assert next_device_id(temp_dir) == 8

    def test_rewrite_replaces_keys(self) -> None:
        lines = rewrite_interface_config(BASE_CONFIG.splitlines(), "eth0:3", "10.0.0.9")
        assert lines == [
            "DEVICE=eth0:3",
            "BOOTPROTO=static",
            "IPADDR=10.0.0.9",
            "NETMASK=255.255.255.0",
            "ONBOOT=yes",
        ]


class TestInstaller:
    """Tests for IpAddressInstaller."""

    async def test_installs_each_address(self, network_settings: Settings, temp_dir: Path) -> None:
        """Should write consecutive alias configs and boot each one."""
        command = IpAddressInstaller(network_settings)
        args = ArgumentNode.root()
        args.add("ip", "10.0.0.1")
        args.add("ip", "10.0.0.2")
        command.init(args)

        result = await command.execute()

        assert result.success, result.reason
        scripts = network_settings.network_scripts_dir
        assert "IPADDR=10.0.0.1" in (scripts / "ifcfg-eth0:0").read_text()
        assert "DEVICE=eth0:1" in (scripts / "ifcfg-eth0:1").read_text()
        assert (temp_dir / "ifup.log").read_text().splitlines() == ["eth0:0 boot", "eth0:1 boot"]

    async def test_ifup_failure(
        self, network_settings: Settings, make_script: Callable[[str, str], str]
    ) -> None:
        network_settings.ifup_command = make_script("ifup_bad.sh", "echo 'no such device' >&2\nexit 1")
        result = await IpAddressInstaller(network_settings, ips=["10.0.0.1"]).execute()
        assert not result.success
        assert "no such device" in result.reason

    async def test_missing_base_config(self, network_settings: Settings) -> None:
        (network_settings.network_scripts_dir / "ifcfg-eth0").unlink()
        result = await IpAddressInstaller(network_settings, ips=["10.0.0.1"]).execute()
        assert not result.success
        assert "does not exist" in result.reason

    def test_requires_an_address(self) -> None:
        with pytest.raises(ValidationError):
            IpAddressInstaller().init(ArgumentNode.root())
