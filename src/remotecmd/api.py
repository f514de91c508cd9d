"""
Main entry points: build a dispatcher and process raw wire text.

This is what the receiving endpoint and the local CLI call.
"""

from __future__ import annotations

import logging

from remotecmd.config import Settings
from remotecmd.dispatcher import CommandRegistry, Dispatcher
from remotecmd.errors import ProtocolError
from remotecmd.results import CommandResult
from remotecmd.wire import parse_envelope, serialize_result

logger = logging.getLogger(__name__)

LIVENESS_REASON = "remotecmd is accepting commands"


def create_dispatcher(
    settings: Settings | None = None,
    *,
    registry: CommandRegistry | None = None,
) -> Dispatcher:
    """
    Create a dispatcher for this host.

    Args:
        settings: Host settings. Defaults to ``Settings.from_env()``.
        registry: Command registry. Defaults to every built-in command.

    Returns:
        A Dispatcher ready to handle envelopes.

    Example:
        >>> dispatcher = create_dispatcher()
        >>> reply = await process_text(dispatcher, request_xml)
    """
    return Dispatcher(settings if settings is not None else Settings.from_env(), registry)


async def process_text(dispatcher: Dispatcher, text: str | bytes) -> str:
    """
    Parse an envelope, dispatch it and serialize the result.

    Never raises for bad input: an envelope that cannot be parsed comes back
    as a serialized FAILURE result.
    """
    try:
        envelope = parse_envelope(text)
    except ProtocolError as e:
        logger.warning(f"Rejected request: {e}")
        return serialize_result(CommandResult.from_exception(e))
    return serialize_result(await dispatcher.handle(envelope))


def liveness_text() -> str:
    """Serialized answer to a liveness check."""
    return serialize_result(CommandResult(reason=LIVENESS_REASON))
