"""
XML wire format for envelopes and results.

Envelope::

    <command-processor>
      <username>...</username>
      <password>...</password>
      <type>remotecmd.FileLister</type>
      <processor-arguments>...</processor-arguments>
    </command-processor>

Result::

    <processor-result class="remotecmd.FileListingResult">
      <type>1</type>
      <reason>...</reason>
      <stack-trace>...</stack-trace>
      ...details...
    </processor-result>

Element text that XML cannot carry unchanged (carriage returns, control
characters such as ANSI escapes or NUL) is sent base64-encoded and marked
with ``encoding="base64"``. Attribute values are not encoded: characters XML
forbids are replaced by ``\\xNN`` escapes.
"""

from __future__ import annotations

import base64
import binascii
import re
import xml.etree.ElementTree as ET
from typing import Callable, cast

from remotecmd._types import ARGUMENTS_TAG, ArgumentNode, CommandEnvelope, Credentials
from remotecmd.errors import ProtocolError
from remotecmd.results import (
    RESULT_TYPES,
    CommandResult,
    FileContentResult,
    FileListingResult,
    Status,
)

ENVELOPE_TAG = "command-processor"
RESULT_TAG = "processor-result"

ENCODING_ATTR = "encoding"
BASE64 = "base64"

# Characters outside the XML 1.0 Char production.
_ILLEGAL_XML = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


# Text encoding


def _needs_encoding(text: str) -> bool:
    return "\r" in text or _ILLEGAL_XML.search(text) is not None


def _xml_safe(text: str) -> str:
    """Replace characters XML forbids with ``\\xNN`` escapes."""
    return _ILLEGAL_XML.sub(lambda m: f"\\x{ord(m.group()):02x}", text)


def _set_text(elem: ET.Element, text: str | None) -> None:
    if text is None:
        return
    if _needs_encoding(text):
        elem.set(ENCODING_ATTR, BASE64)
        elem.text = base64.b64encode(text.encode("utf-8", errors="surrogatepass")).decode("ascii")
    else:
        elem.text = text


def _get_text(elem: ET.Element) -> str:
    """Return element text, decoding it when it is marked base64."""
    text = elem.text or ""
    if elem.get(ENCODING_ATTR) != BASE64:
        return text
    try:
        return base64.b64decode(text, validate=True).decode("utf-8", errors="surrogatepass")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ProtocolError(f"malformed base64 text in <{elem.tag}>: {e}") from e


def _find_text(parent: ET.Element, tag: str) -> str | None:
    elem = parent.find(tag)
    return _get_text(elem) if elem is not None else None


def _safe_attributes(attributes: dict[str, str]) -> dict[str, str]:
    return {name: _xml_safe(value) for name, value in attributes.items()}


# Envelopes


def _node_to_element(node: ArgumentNode, parent: ET.Element | None = None) -> ET.Element:
    attributes = _safe_attributes(node.attributes)
    if parent is None:
        elem = ET.Element(node.name, attributes)
    else:
        elem = ET.SubElement(parent, node.name, attributes)
    if node.children:
        for child in node.children:
            _node_to_element(child, elem)
        if node.value is not None:
            elem.text = _xml_safe(node.value)
    else:
        _set_text(elem, node.value)
    return elem


def _element_to_node(elem: ET.Element) -> ArgumentNode:
    children = [_element_to_node(child) for child in elem]
    attributes = dict(elem.attrib)
    if children:
        value = elem.text
        if value is not None and not value.strip():
            value = None
    else:
        value = _get_text(elem) if elem.text is not None else None
        if attributes.get(ENCODING_ATTR) == BASE64:
            del attributes[ENCODING_ATTR]
    return ArgumentNode(elem.tag, value, attributes, children)


def _parse(text: str | bytes, what: str) -> ET.Element:
    try:
        return ET.fromstring(text)
    except ET.ParseError as e:
        raise ProtocolError(f"malformed {what}: {e}") from e


def serialize_arguments(arguments: ArgumentNode) -> str:
    """Serialize an argument section on its own."""
    return ET.tostring(_node_to_element(arguments), encoding="unicode")


def parse_arguments(text: str | bytes) -> ArgumentNode:
    """
    Parse a standalone ``<processor-arguments>`` document.

    Raises:
        ProtocolError: If the text is not well formed or has the wrong root.
    """
    root = _parse(text, "argument document")
    if root.tag != ARGUMENTS_TAG:
        raise ProtocolError(f"expected <{ARGUMENTS_TAG}> root, found <{root.tag}>")
    return _element_to_node(root)


def serialize_envelope(envelope: CommandEnvelope) -> str:
    """Serialize an envelope to wire text."""
    root = ET.Element(ENVELOPE_TAG)
    _set_text(ET.SubElement(root, "username"), envelope.credentials.username)
    _set_text(ET.SubElement(root, "password"), envelope.credentials.password)
    _set_text(ET.SubElement(root, "type"), envelope.type_id)
    args = ArgumentNode(ARGUMENTS_TAG, None, envelope.arguments.attributes, envelope.arguments.children)
    _node_to_element(args, root)
    return ET.tostring(root, encoding="unicode")


def parse_envelope(text: str | bytes) -> CommandEnvelope:
    """
    Parse wire text into an envelope.

    Raises:
        ProtocolError: If the text is malformed or has no command type.
    """
    root = _parse(text, "command envelope")
    if root.tag != ENVELOPE_TAG:
        raise ProtocolError(f"expected <{ENVELOPE_TAG}> root, found <{root.tag}>")

    type_id = (_find_text(root, "type") or "").strip()
    if not type_id:
        raise ProtocolError("command envelope has no type")

    args_elem = root.find(ARGUMENTS_TAG)
    arguments = _element_to_node(args_elem) if args_elem is not None else ArgumentNode.root()

    return CommandEnvelope(
        type_id=type_id,
        arguments=arguments,
        credentials=Credentials(
            username=_find_text(root, "username") or "",
            password=_find_text(root, "password") or "",
        ),
    )


# Result details, keyed by subtype


def _write_listing(result: CommandResult, root: ET.Element) -> None:
    listing_result = cast(FileListingResult, result)
    listing = ET.SubElement(root, "listing")
    for path, entries in listing_result.listings.items():
        directory = ET.SubElement(listing, "directory", path=_xml_safe(path))
        for entry in entries:
            file = ET.SubElement(
                directory,
                "file",
                lastModified=str(entry.last_modified_ms),
                size=str(entry.size),
            )
            _set_text(file, entry.name)


def _read_listing(result: CommandResult, root: ET.Element) -> None:
    listing_result = cast(FileListingResult, result)
    listing = root.find("listing")
    if listing is None:
        return
    try:
        for directory in listing.iter("directory"):
            path = directory.get("path", "")
            for file in directory.iter("file"):
                listing_result.add(
                    path,
                    _get_text(file),
                    int(file.get("lastModified", "0")),
                    int(file.get("size", "0")),
                )
    except ValueError as e:
        raise ProtocolError(f"malformed file listing: {e}") from e


def _write_content(result: CommandResult, root: ET.Element) -> None:
    content = cast(FileContentResult, result).content
    if content is not None:
        _set_text(ET.SubElement(root, "content"), content)


def _read_content(result: CommandResult, root: ET.Element) -> None:
    content = root.find("content")
    if content is not None:
        cast(FileContentResult, result).content = _get_text(content)


_DETAIL_WRITERS: dict[str, Callable[[CommandResult, ET.Element], None]] = {
    FileListingResult.result_type: _write_listing,
    FileContentResult.result_type: _write_content,
}

_DETAIL_READERS: dict[str, Callable[[CommandResult, ET.Element], None]] = {
    FileListingResult.result_type: _read_listing,
    FileContentResult.result_type: _read_content,
}


# Results


def serialize_result(result: CommandResult) -> str:
    """Serialize a result of any registered variant to wire text."""
    root = ET.Element(RESULT_TAG, {"class": result.result_type})
    ET.SubElement(root, "type").text = str(int(result.status))
    _set_text(ET.SubElement(root, "reason"), result.reason)
    _set_text(ET.SubElement(root, "stack-trace"), result.trace)
    writer = _DETAIL_WRITERS.get(result.result_type)
    if writer is not None:
        writer(result, root)
    return ET.tostring(root, encoding="unicode")


def parse_result(text: str | bytes) -> CommandResult:
    """
    Parse wire text into the result variant named by its ``class`` attribute.

    Raises:
        ProtocolError: If the text is malformed, the status code is missing or
            invalid, or the subtype is not registered.
    """
    root = _parse(text, "result")
    if root.tag != RESULT_TAG:
        raise ProtocolError(f"No {RESULT_TAG} parent tag found")

    subtype = root.get("class")
    if subtype is None:
        raise ProtocolError(f"No {RESULT_TAG} class attribute found")
    cls = RESULT_TYPES.get(subtype)
    if cls is None:
        raise ProtocolError(f"unregistered result type: {subtype}")

    code = root.findtext("type")
    if code is None:
        raise ProtocolError(f"No {RESULT_TAG} type tag found")
    try:
        status = Status(int(code))
    except ValueError as e:
        raise ProtocolError(f"invalid result type code: {code!r}") from e

    result = cls(
        status=status,
        reason=_find_text(root, "reason") or None,
        trace=_find_text(root, "stack-trace") or None,
    )
    reader = _DETAIL_READERS.get(subtype)
    if reader is not None:
        reader(result, root)
    return result
