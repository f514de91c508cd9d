"""Tests for the HTTP client and the receiving endpoint."""

from __future__ import annotations

from pathlib import Path
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from remotecmd import (
    ArgumentNode,
    CommandEnvelope,
    CommandResult,
    Credentials,
    Dispatcher,
    FileContentResult,
    FileLister,
    FileListingResult,
    FileReader,
    ProtocolError,
    RemoteCommandClient,
)
from remotecmd.api import LIVENESS_REASON, process_text
from remotecmd.server import create_app
from remotecmd.wire import parse_result, serialize_envelope


@pytest_asyncio.fixture
async def client(dispatcher: Dispatcher) -> AsyncGenerator[RemoteCommandClient, None]:
    """Client wired to an in-process endpoint."""
    transport = httpx.ASGITransport(app=create_app(dispatcher))
    client = RemoteCommandClient("http://remotecmd.test/", transport=transport)
    try:
        yield client
    finally:
        await client.close()


class TestEndpoint:
    """Tests for the FastAPI endpoint through the client."""

    async def test_liveness(self, client: RemoteCommandClient) -> None:
        result = await client.test()
        assert result.success
        assert result.reason == LIVENESS_REASON

    async def test_send_command_instance(self, client: RemoteCommandClient, temp_dir: Path) -> None:
        """Should rebuild the listing variant on the client side."""
        (temp_dir / "a.txt").write_text("abc")
        lister = FileLister()
        lister.add_directory(str(temp_dir))

        result = await client.send(lister)

        assert isinstance(result, FileListingResult)
        assert [e.name for e in result.files(str(temp_dir))] == ["a.txt"]

    async def test_send_envelope(self, client: RemoteCommandClient, temp_dir: Path) -> None:
        (temp_dir / "motd").write_text("hello")
        envelope = FileReader(file=str(temp_dir / "motd")).create_envelope(Credentials("admin", "pw"))
        result = await client.send(envelope)
        assert isinstance(result, FileContentResult)
        assert result.content == "hello"

    async def test_unknown_type_is_a_result(self, client: RemoteCommandClient) -> None:
        result = await client.send(CommandEnvelope("com.example.Missing"))
        assert not result.success
        assert result.reason == "unknown command type: com.example.Missing"

    async def test_unparsable_body_is_a_failure_result(self, dispatcher: Dispatcher) -> None:
        """Garbage in the processor field should not produce an HTTP error."""
        transport = httpx.ASGITransport(app=create_app(dispatcher))
        async with httpx.AsyncClient(transport=transport, base_url="http://remotecmd.test") as http:
            response = await http.post("/", data={"processor": "<not-xml"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/xml")
        assert not parse_result(response.text).success

    async def test_missing_field_is_a_failure_result(self, dispatcher: Dispatcher) -> None:
        transport = httpx.ASGITransport(app=create_app(dispatcher))
        async with httpx.AsyncClient(transport=transport, base_url="http://remotecmd.test") as http:
            response = await http.post("/", data={"other": "1"})
        assert response.status_code == 200
        assert not parse_result(response.text).success


class TestClientErrors:
    """Tests for client-side protocol errors."""

    async def test_non_result_reply(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>oops</html>"))
        async with RemoteCommandClient("http://remotecmd.test/", transport=transport) as client:
            with pytest.raises(ProtocolError, match="An error occurred processing the command"):
                await client.test()

    async def test_error_status(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="down"))
        async with RemoteCommandClient("http://remotecmd.test/", transport=transport) as client:
            with pytest.raises(ProtocolError, match="Could not execute command to: http://remotecmd.test/"):
                await client.send(CommandEnvelope("remotecmd.FileLister"))

    async def test_connection_failure(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with RemoteCommandClient("http://remotecmd.test/", transport=httpx.MockTransport(refuse)) as client:
            with pytest.raises(ProtocolError, match="Could not execute command"):
                await client.test()

    async def test_posts_processor_field(self) -> None:
        """Should send the serialized envelope in the processor form field."""
        seen: list[bytes] = []

        def capture(request: httpx.Request) -> httpx.Response:
            seen.append(request.content)
            return httpx.Response(200, text='<processor-result class="remotecmd.CommandResult"><type>1</type></processor-result>')

        async with RemoteCommandClient("http://remotecmd.test/", transport=httpx.MockTransport(capture)) as client:
            result = await client.send(CommandEnvelope("remotecmd.FileLister"))

        assert result.success
        assert seen and seen[0].startswith(b"processor=")


class TestProcessText:
    """Tests for process_text()."""

    async def test_round_trip(self, dispatcher: Dispatcher, temp_dir: Path) -> None:
        args = ArgumentNode.root()
        args.add("directory", str(temp_dir / "made"))
        reply = await process_text(dispatcher, serialize_envelope(CommandEnvelope("remotecmd.DirectoryCreator", args)))
        assert type(parse_result(reply)) is CommandResult
        assert (temp_dir / "made").is_dir()

    async def test_bad_envelope(self, dispatcher: Dispatcher) -> None:
        result = parse_result(await process_text(dispatcher, "<command-processor/>"))
        assert not result.success
        assert result.reason == "command envelope has no type"

    async def test_control_characters_in_file(self, dispatcher: Dispatcher, temp_dir: Path) -> None:
        (temp_dir / "raw").write_bytes(b"hello\x00world\r\n\x1b[31mred\x1b[0m")
        args = ArgumentNode.root()
        args.add("file", str(temp_dir / "raw"))
        reply = await process_text(dispatcher, serialize_envelope(CommandEnvelope("remotecmd.FileReader", args)))
        result = parse_result(reply)
        assert isinstance(result, FileContentResult)
        assert result.content == "hello\x00world\r\n\x1b[31mred\x1b[0m"
