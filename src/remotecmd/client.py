"""
HTTP transport client.

Posts serialized envelopes to a remote endpoint and parses the reply into the
result variant it names.
"""

from __future__ import annotations

import logging

import httpx

from remotecmd._types import CommandEnvelope, Credentials
from remotecmd.commands._base import Command
from remotecmd.errors import ProtocolError
from remotecmd.results import CommandResult
from remotecmd.wire import parse_result, serialize_envelope

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


class RemoteCommandClient:
    """
    Send commands to a remote remotecmd endpoint.

    Args:
        url: Endpoint URL that accepts the form POST.
        credentials: Sent with commands passed to send() as Command instances.
        timeout: Seconds to wait for the endpoint to answer.
        transport: Custom httpx transport, mainly for tests.

    Example:
        >>> async with RemoteCommandClient("http://host:8080/") as client:
        ...     result = await client.send(FileLister())
    """

    def __init__(
        self,
        url: str,
        *,
        credentials: Credentials | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.credentials = credentials or Credentials()
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=transport)

    async def send(self, request: CommandEnvelope | Command) -> CommandResult:
        """
        Execute a command on the remote host.

        Args:
            request: An envelope, or a command whose envelope is built with
                this client's credentials.

        Returns:
            The result variant named in the reply.

        Raises:
            ProtocolError: If the endpoint cannot be reached, answers with an
                error status, or replies with text that is not a result.
        """
        if isinstance(request, Command):
            request = request.create_envelope(self.credentials)
        logger.debug(f"Sending {request.type_id} to {self.url}")
        return await self._post({"processor": serialize_envelope(request)})

    async def test(self) -> CommandResult:
        """
        Probe the endpoint without running anything.

        Raises:
            ProtocolError: If the endpoint does not answer with a result.
        """
        return await self._post({"test": "1"})

    async def _post(self, form: dict[str, str]) -> CommandResult:
        try:
            response = await self._client.post(self.url, data=form)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ProtocolError(f"Could not execute command to: {self.url}: {e}") from e

        try:
            return parse_result(response.text)
        except ProtocolError as e:
            raise ProtocolError(f"An error occurred processing the command: {e}") from e

    async def close(self) -> None:
        """Close the underlying HTTP connections. Safe to call more than once."""
        await self._client.aclose()

    async def __aenter__(self) -> RemoteCommandClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
