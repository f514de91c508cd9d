"""Pytest configuration and fixtures for remotecmd tests."""

from __future__ import annotations

import stat
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

from remotecmd import Dispatcher, Settings


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory(prefix="remotecmd_test_") as tmp:
        yield Path(tmp)


@pytest.fixture
def make_script(temp_dir: Path) -> Callable[[str, str], str]:
    """Write a shell script into temp_dir and return a command line running it."""

    def _make(name: str, body: str) -> str:
        path = temp_dir / name
        path.write_text(f"#!/bin/sh\n{body}\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR)
        return f"sh {path}"

    return _make


@pytest.fixture
def vhost_settings(temp_dir: Path, make_script: Callable[[str, str], str]) -> Settings:
    """Settings for the virtual host editor with an empty config file."""
    config = temp_dir / "hosted_domains.conf"
    config.write_text("")
    restart_log = temp_dir / "restarts.log"
    return Settings(
        vhost_config_file=config,
        apache_restart_command=make_script("restart.sh", f"echo restarted >> {restart_log}"),
        lock_max_wait=0.5,
        lock_poll_interval=0.05,
    )


@pytest.fixture
def dispatcher(temp_dir: Path) -> Dispatcher:
    """Dispatcher with default settings rooted in temp_dir."""
    return Dispatcher(Settings(network_scripts_dir=temp_dir))
