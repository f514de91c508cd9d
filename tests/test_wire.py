"""Tests for the XML wire format."""

from __future__ import annotations

import pytest

from remotecmd import (
    ArgumentNode,
    CommandEnvelope,
    CommandResult,
    Credentials,
    FileContentResult,
    FileListingResult,
    ProtocolError,
    ResourceError,
    Status,
)
from remotecmd.wire import (
    parse_arguments,
    parse_envelope,
    parse_result,
    serialize_envelope,
    serialize_result,
)


class TestEnvelope:
    """Tests for envelope serialization."""

    def test_round_trip_preserves_tree(self) -> None:
        """Should keep order, repetition, nesting and attributes."""
        args = ArgumentNode.root()
        args.add("website_id", "100")
        host = args.add("virtual_host")
        host.add("ip", "10.0.0.1")
        directory = host.add("Directory", path="/srv")
        directory.add("Options", "None")
        args.add("directory", "/a", filter="*.txt")
        args.add("directory", "/b")
        envelope = CommandEnvelope("remotecmd.FileLister", args, Credentials("admin", "secret"))

        parsed = parse_envelope(serialize_envelope(envelope))

        assert parsed == envelope
        assert [d.value for d in parsed.arguments.children_named("directory")] == ["/a", "/b"]
        assert parsed.arguments.children_named("directory")[0].attributes == {"filter": "*.txt"}

    def test_parses_indented_document(self) -> None:
        """Whitespace between block children should not become values."""
        text = """
        <command-processor>
          <username>u</username>
          <password>p</password>
          <type>remotecmd.ServerControl</type>
          <processor-arguments>
            <command>check</command>
          </processor-arguments>
        </command-processor>
        """.strip()
        envelope = parse_envelope(text)
        assert envelope.type_id == "remotecmd.ServerControl"
        assert envelope.credentials == Credentials("u", "p")
        assert envelope.arguments.value is None
        assert envelope.arguments.child_value("command") == "check"

    def test_missing_arguments_section(self) -> None:
        """Should default to an empty argument section."""
        envelope = parse_envelope("<command-processor><type>t</type></command-processor>")
        assert envelope.arguments.children == []

    @pytest.mark.parametrize(
        "text",
        [
            "<command-processor><type>t</type>",
            "<processor-result/>",
            "<command-processor><type> </type></command-processor>",
        ],
    )
    def test_rejects_bad_envelopes(self, text: str) -> None:
        """Should raise ProtocolError for malformed or incomplete envelopes."""
        with pytest.raises(ProtocolError):
            parse_envelope(text)

    def test_parse_arguments_requires_root(self) -> None:
        """Should only accept a processor-arguments document."""
        assert parse_arguments("<processor-arguments><ip>1.2.3.4</ip></processor-arguments>").child_value("ip") == "1.2.3.4"
        with pytest.raises(ProtocolError):
            parse_arguments("<arguments/>")


class TestResult:
    """Tests for result serialization."""

    def test_failure_round_trip(self) -> None:
        """Should keep status, reason and trace."""
        result = CommandResult.failure("disk full", "Traceback ...")
        parsed = parse_result(serialize_result(result))
        assert type(parsed) is CommandResult
        assert parsed.status == Status.FAILURE
        assert parsed.reason == "disk full"
        assert parsed.trace == "Traceback ..."

    def test_empty_reason_is_absent(self) -> None:
        """Empty reason and stack-trace elements should parse as None."""
        text = '<processor-result class="remotecmd.CommandResult"><type>1</type><reason/><stack-trace></stack-trace></processor-result>'
        parsed = parse_result(text)
        assert parsed.success
        assert parsed.reason is None
        assert parsed.trace is None

    def test_listing_round_trip(self) -> None:
        """Should rebuild the listing variant with its entries."""
        result = FileListingResult()
        result.add("/x", "a.txt", 123, 4)
        result.add("/x", "b.txt", 456, 0)
        result.add("/y", "c", 789, 10)

        parsed = parse_result(serialize_result(result))

        assert isinstance(parsed, FileListingResult)
        assert [e.name for e in parsed.files("/x")] == ["a.txt", "b.txt"]
        assert parsed.files("/y")[0].last_modified_ms == 789
        assert parsed.files("/y")[0].size == 10

    def test_listing_wire_shape(self) -> None:
        """Should write directories and files as nested elements."""
        result = FileListingResult()
        result.add("/x", "a.txt", 123, 4)
        text = serialize_result(result)
        assert 'class="remotecmd.FileListingResult"' in text
        assert '<directory path="/x"><file lastModified="123" size="4">a.txt</file></directory>' in text

    def test_content_round_trip(self) -> None:
        """Should keep file content, including markup characters."""
        result = FileContentResult(content="<html>\n  a & b\n</html>\n")
        parsed = parse_result(serialize_result(result))
        assert isinstance(parsed, FileContentResult)
        assert parsed.details == "<html>\n  a & b\n</html>\n"

    @pytest.mark.parametrize(
        "text",
        [
            "not xml",
            "<command-processor/>",
            '<processor-result class="remotecmd.Unknown"><type>1</type></processor-result>',
            '<processor-result class="remotecmd.CommandResult"></processor-result>',
            '<processor-result class="remotecmd.CommandResult"><type>7</type></processor-result>',
            "<processor-result><type>1</type></processor-result>",
        ],
    )
    def test_rejects_bad_results(self, text: str) -> None:
        """Should raise ProtocolError for anything that is not a registered result."""
        with pytest.raises(ProtocolError):
            parse_result(text)


class TestTextEncoding:
    """Text that XML cannot carry unchanged should survive the wire."""

    @pytest.mark.parametrize(
        "content",
        [
            "a\r\nb\r\n",
            "hello\x00world",
            "\x1b[31mred\x1b[0m\n",
        ],
    )
    def test_content_kept_exactly(self, content: str) -> None:
        parsed = parse_result(serialize_result(FileContentResult(content=content)))
        assert isinstance(parsed, FileContentResult)
        assert parsed.content == content

    def test_failure_with_ansi_output(self) -> None:
        """Reason and trace taken from a failed process should come back intact."""
        error = ResourceError("restart \x1b[31mfailed\x1b[0m", output="line 1\r\n\x1b[1mline 2\x1b[0m\n")
        result = CommandResult.from_exception(error)

        parsed = parse_result(serialize_result(result))

        assert parsed.status == Status.FAILURE
        assert parsed.reason == "restart \x1b[31mfailed\x1b[0m"
        assert parsed.trace == "line 1\r\n\x1b[1mline 2\x1b[0m\n"

    def test_plain_text_is_not_encoded(self) -> None:
        text = serialize_result(CommandResult.failure("disk full", "Traceback ...\n"))
        assert "encoding=" not in text
        assert "<reason>disk full</reason>" in text

    def test_encoded_text_is_marked(self) -> None:
        text = serialize_result(CommandResult.failure("a\r\nb"))
        assert '<reason encoding="base64">YQ0KYg==</reason>' in text

    def test_argument_values_kept_exactly(self) -> None:
        args = ArgumentNode.root()
        args.add("content", "x\r\ny\x1b[0m")
        args.add("file", "/srv/a.txt")
        envelope = CommandEnvelope("remotecmd.FileWriter", args)

        parsed = parse_envelope(serialize_envelope(envelope))

        assert parsed == envelope
        assert parsed.arguments.children_named("content")[0].attributes == {}

    def test_attribute_control_characters_escaped(self) -> None:
        args = ArgumentNode.root()
        args.add("directory", "/var/log", filter="a\x1bb")
        parsed = parse_envelope(serialize_envelope(CommandEnvelope("remotecmd.FileLister", args)))
        assert parsed.arguments.children[0].attributes == {"filter": "a\\x1bb"}

    def test_malformed_base64_rejected(self) -> None:
        text = '<processor-result class="remotecmd.CommandResult"><type>1</type><reason encoding="base64">!!</reason></processor-result>'
        with pytest.raises(ProtocolError, match="malformed base64"):
            parse_result(text)
