"""
search/codec.py — Reasoning Response Protocol

Reasoning backends answer in free-form text that embeds exactly one XML
payload between a ``<reply>`` marker line and a ``</reply>`` marker line:

    Sure, here is what I found.
    <reply>
    <search_requests>
    <request>
    <thinking>the issue names the function directly</thinking>
    <tool>Keyword</tool>
    <query>generate_report</query>
    </request>
    </search_requests>
    </reply>

Everything here is a pure function: text in, typed value (or
ProtocolDecodeError) out. The same module renders search results and
discovered files back into XML for the next prompt.

Payload schemas (protocol version 1):
    queries:   <search_requests><request><thinking/><tool/><query/></request>*</search_requests>
    identify:  <response><item><path/><thinking/></item>*<scratch_pad/></response>
    decide:    <response><suggestions/><complete>true|false</complete></response>

File content is written as text when it is valid UTF-8 that XML can carry,
otherwise as <FileContent encoding="base64">. Carriage returns are written
as &#13; so decoding returns the original bytes.
"""

from __future__ import annotations

import base64
import binascii
import re
import xml.etree.ElementTree as ET
from typing import Optional

from pydantic import ValidationError

from exceptions import ProtocolDecodeError
from search.types import (
    DecideResponse,
    File,
    FileContent,
    IdentifiedItem,
    IdentifyResponse,
    SearchQuery,
    SearchResult,
    SearchToolType,
    TagSnippet,
)

PROTOCOL_VERSION = "1"
SUPPORTED_VERSIONS = frozenset({PROTOCOL_VERSION})

_OPEN_MARKER = re.compile(r'<reply(?:\s+version\s*=\s*"(?P<version>[^"]*)")?\s*>')
_CLOSE_MARKER = "</reply>"

_XML_DECLARATION_START = "<?xml"
_XML_DECLARATION_END = "?>"

# Control characters that XML 1.0 cannot carry
_XML_INVALID_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")

_BASE64 = "base64"

_TOOL_BY_NAME = {t.value.lower(): t for t in SearchToolType}


# ─────────────────────────────────────────────────────────────────────────────
# Payload extraction
# ─────────────────────────────────────────────────────────────────────────────


def extract_payload(text: str) -> str:
    """
    Return the lines strictly between the first opening marker line and the
    next closing marker line.

    Raises ProtocolDecodeError when either marker is missing or the opening
    marker declares an unsupported protocol version.
    """
    lines = text.splitlines()

    start: Optional[int] = None
    for i, line in enumerate(lines):
        match = _OPEN_MARKER.search(line)
        if match:
            version = match.group("version")
            if version is not None and version not in SUPPORTED_VERSIONS:
                raise ProtocolDecodeError(
                    f"Unsupported reply protocol version '{version}'. "
                    f"Supported: {sorted(SUPPORTED_VERSIONS)}",
                    raw=line,
                )
            start = i + 1
            break

    if start is None:
        raise ProtocolDecodeError("No <reply> marker found in generated text", raw=text)

    block: list[str] = []
    for line in lines[start:]:
        if _CLOSE_MARKER in line:
            return "\n".join(block)
        block.append(line)

    raise ProtocolDecodeError("No closing </reply> marker found in generated text", raw="\n".join(block))


def _parse_block(block: str) -> ET.Element:
    try:
        return ET.fromstring(block.strip())
    except ET.ParseError as e:
        raise ProtocolDecodeError("Reply payload is not well-formed XML", raw=block, cause=e) from e


def _text(element: ET.Element, tag: str) -> str:
    return (element.findtext(tag) or "").strip()


def _expect_root(root: ET.Element, tag: str, block: str) -> None:
    if root.tag != tag:
        raise ProtocolDecodeError(f"Expected <{tag}> payload, got <{root.tag}>", raw=block)


# ─────────────────────────────────────────────────────────────────────────────
# Decoders, one per reasoning operation
# ─────────────────────────────────────────────────────────────────────────────


def decode_search_requests(text: str) -> list[SearchQuery]:
    """Decode a query-generation reply. At least one request is required."""
    block = extract_payload(text)
    root = _parse_block(block)
    _expect_root(root, "search_requests", block)

    queries: list[SearchQuery] = []
    for request in root.findall("request"):
        tool_name = _text(request, "tool")
        tool = _TOOL_BY_NAME.get(tool_name.lower())
        if tool is None:
            raise ProtocolDecodeError(
                f"Unknown search tool '{tool_name}'. "
                f"Expected one of: {[t.value for t in SearchToolType]}",
                raw=block,
            )
        query = _text(request, "query")
        if not query:
            raise ProtocolDecodeError("Search request has an empty <query>", raw=block)
        try:
            queries.append(SearchQuery(tool=tool, query=query, thinking=_text(request, "thinking")))
        except ValidationError as e:
            raise ProtocolDecodeError("Invalid search request", raw=block, cause=e) from e

    if not queries:
        raise ProtocolDecodeError("Reply contained no search requests", raw=block)
    return queries


def decode_identify(text: str) -> IdentifyResponse:
    """Decode an identify reply. Items with a blank path are dropped."""
    block = extract_payload(text)
    root = _parse_block(block)
    _expect_root(root, "response", block)

    items = [
        IdentifiedItem(path=_text(item, "path"), thinking=_text(item, "thinking"))
        for item in root.findall("item")
        if _text(item, "path")
    ]
    return IdentifyResponse(items=items, scratch_pad=_text(root, "scratch_pad"))


def decode_decide(text: str) -> DecideResponse:
    """Decode a decide reply. ``complete`` must read true or false."""
    block = extract_payload(text)
    root = _parse_block(block)
    _expect_root(root, "response", block)

    raw_complete = _text(root, "complete").lower()
    if raw_complete not in ("true", "false"):
        raise ProtocolDecodeError(
            f"<complete> must be 'true' or 'false', got '{raw_complete}'",
            raw=block,
        )
    return DecideResponse(
        suggestions=_text(root, "suggestions"),
        complete=raw_complete == "true",
    )


# ─────────────────────────────────────────────────────────────────────────────
# Encoders: results and files echoed back into prompts
# ─────────────────────────────────────────────────────────────────────────────


def strip_xml_declaration(text: str) -> str:
    """Drop a leading ``<?xml ...?>`` preamble, if present."""
    if text.startswith(_XML_DECLARATION_START):
        end = text.find(_XML_DECLARATION_END)
        if end != -1:
            return text[end + len(_XML_DECLARATION_END):].lstrip()
    return text


def _clean(value: str) -> str:
    return _XML_INVALID_CHARS.sub("", value)


def _to_xml(root: ET.Element) -> str:
    # A raw \r would be normalised to \n by any XML parser
    text = ET.tostring(root, encoding="unicode", xml_declaration=True)
    return strip_xml_declaration(text).replace("\r", "&#13;")


def _encode_content(parent: ET.Element, content: bytes) -> None:
    """
    UTF-8 text XML can carry goes in as-is so the model can read it.
    Anything else (invalid UTF-8, control characters) is base64 encoded and
    marked with encoding="base64", so the bytes always survive a round trip.
    """
    element = ET.SubElement(parent, "FileContent")
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError:
        text = None
    if text is not None and not _XML_INVALID_CHARS.search(text):
        element.text = text
        return
    element.set("encoding", _BASE64)
    element.text = base64.b64encode(content).decode("ascii")


def _decode_content(element: ET.Element, body: str) -> bytes:
    encoding = element.get("encoding")
    if encoding is None:
        return (element.text or "").encode("utf-8")
    if encoding != _BASE64:
        raise ProtocolDecodeError(f"Unknown FileContent encoding '{encoding}'", raw=body)
    try:
        return base64.b64decode(element.text or "", validate=True)
    except binascii.Error as e:
        raise ProtocolDecodeError("FileContent is not valid base64", raw=body, cause=e) from e


def encode_search_result(result: SearchResult) -> str:
    root = ET.Element("search_result")
    ET.SubElement(root, "path").text = _clean(result.path)
    ET.SubElement(root, "thinking").text = _clean(result.thinking)
    snippet = ET.SubElement(root, "snippet")
    if isinstance(result.snippet, FileContent):
        _encode_content(snippet, result.snippet.content)
    else:
        ET.SubElement(snippet, "Tag").text = _clean(result.snippet.name)
    return _to_xml(root)


def decode_search_result(text: str) -> SearchResult:
    """Inverse of encode_search_result; tolerates a leading XML declaration."""
    body = strip_xml_declaration(text.strip())
    root = _parse_block(body)
    _expect_root(root, "search_result", body)

    snippet_el = root.find("snippet")
    if snippet_el is None or len(snippet_el) != 1:
        raise ProtocolDecodeError("search_result needs exactly one snippet", raw=body)
    inner = snippet_el[0]
    if inner.tag == "FileContent":
        snippet = FileContent(content=_decode_content(inner, body))
    elif inner.tag == "Tag":
        snippet = TagSnippet(name=inner.text or "")
    else:
        raise ProtocolDecodeError(f"Unknown snippet kind <{inner.tag}>", raw=body)

    return SearchResult(
        path=root.findtext("path") or "",
        thinking=root.findtext("thinking") or "",
        snippet=snippet,
    )


def encode_search_results(results: list[SearchResult], separator: str = "\n") -> str:
    return separator.join(encode_search_result(r) for r in results)


def encode_file(file: File) -> str:
    root = ET.Element("file")
    ET.SubElement(root, "path").text = _clean(file.path)
    ET.SubElement(root, "thinking").text = _clean(file.thinking)
    return _to_xml(root)
