"""
Cross-process advisory locking over lock files.

A lock is a file whose existence signals ownership; its content is an opaque
owner token. Every participant must honor the convention. The lock is not
crash-safe: a process that dies while holding it leaves a stale file behind
that has to be removed by hand.
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator

from remotecmd.errors import LockTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_MAX_WAIT = 30.0
DEFAULT_POLL_INTERVAL = 10.0

# Serializes create attempts on the same path within this process.
_table_guard = threading.Lock()
_path_mutexes: dict[str, threading.Lock] = {}


@dataclass(frozen=True, slots=True)
class LockHandle:
    """Proof of ownership returned by acquire()."""

    path: Path
    owner: str
    acquired_at: float


def _path_mutex(path: Path) -> threading.Lock:
    key = os.path.abspath(path)
    with _table_guard:
        mutex = _path_mutexes.get(key)
        if mutex is None:
            mutex = _path_mutexes[key] = threading.Lock()
        return mutex


def _try_create(path: Path, owner: str) -> bool:
    """Atomically create the lock file. Return False if it already exists."""
    with _path_mutex(path):
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        with os.fdopen(fd, "w", encoding="utf-8") as out:
            out.write(owner)
        return True


async def acquire(
    path: Path | str,
    owner: str,
    *,
    max_wait: float = DEFAULT_MAX_WAIT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> LockHandle:
    """
    Acquire the lock file at ``path``, waiting up to ``max_wait`` seconds.

    Args:
        path: Location of the lock file.
        owner: Token written into the lock file.
        max_wait: Seconds to keep trying before giving up.
        poll_interval: Seconds to sleep between attempts. Sleeps are cut short
            so the loop never runs past ``max_wait``.

    Returns:
        A LockHandle that must be passed to release().

    Raises:
        LockTimeoutError: If the lock could not be obtained in time.
    """
    path = Path(path)
    loop = asyncio.get_running_loop()
    deadline = loop.time() + max_wait

    while True:
        if _try_create(path, owner):
            logger.debug(f"Acquired lock {path} for {owner}")
            return LockHandle(path=path, owner=owner, acquired_at=time.time())

        remaining = deadline - loop.time()
        if remaining <= 0:
            raise LockTimeoutError(f"could not obtain lock {path} after {max_wait:g} seconds")

        logger.info(f"Lock {path} is held, retrying in {min(poll_interval, remaining):.1f}s")
        await asyncio.sleep(min(poll_interval, remaining))


def release(handle: LockHandle) -> None:
    """Delete the lock file. Safe to call when the file is already gone."""
    handle.path.unlink(missing_ok=True)
    logger.debug(f"Released lock {handle.path}")


@asynccontextmanager
async def hold(
    path: Path | str,
    owner: str,
    *,
    max_wait: float = DEFAULT_MAX_WAIT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> AsyncIterator[LockHandle]:
    """
    Hold the lock for the duration of an ``async with`` block.

    The lock file is removed on every exit path, including exceptions.

    Example:
        >>> async with hold("/var/run/httpd.conf.lck", "42"):
        ...     rewrite_config()
    """
    handle = await acquire(path, owner, max_wait=max_wait, poll_interval=poll_interval)
    try:
        yield handle
    finally:
        release(handle)
