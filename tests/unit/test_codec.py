"""
tests/unit/test_codec.py — Reply Protocol Unit Tests

Covers:
  - <reply> marker extraction (missing open / close, versions)
  - search request, identify and decide decoding
  - malformed XML and schema violations raise ProtocolDecodeError
  - search result / file encoding, including the XML declaration strip
  - FileContent bytes (CRLF, control characters, invalid UTF-8) surviving encoding

Run with:
    pytest tests/unit/test_codec.py -v
"""

from __future__ import annotations

import pytest

from exceptions import ProtocolDecodeError
from search import codec
from search.types import File, SearchQuery, SearchResult, SearchToolType, Tag, TagSnippet


def _reply(body: str, preamble: str = "Here you go.", version: str | None = None) -> str:
    open_marker = f'<reply version="{version}">' if version else "<reply>"
    return f"{preamble}\n{open_marker}\n{body}\n</reply>\ntrailing chatter"


# ─────────────────────────────────────────────────────────────────────────────
# Payload extraction
# ─────────────────────────────────────────────────────────────────────────────


class TestExtractPayload:
    def test_returns_lines_between_markers(self):
        text = "junk\n<reply>\nline one\nline two\n</reply>\nmore junk"
        assert codec.extract_payload(text) == "line one\nline two"

    def test_missing_open_marker_raises(self):
        with pytest.raises(ProtocolDecodeError, match="No <reply> marker"):
            codec.extract_payload("<search_requests></search_requests>\n</reply>")

    def test_missing_close_marker_raises(self):
        with pytest.raises(ProtocolDecodeError, match="closing"):
            codec.extract_payload("<reply>\n<search_requests></search_requests>")

    def test_only_first_block_is_used(self):
        text = "<reply>\nfirst\n</reply>\n<reply>\nsecond\n</reply>"
        assert codec.extract_payload(text) == "first"

    def test_supported_version_accepted(self):
        assert codec.extract_payload(_reply("x", version="1")) == "x"

    def test_unsupported_version_rejected(self):
        with pytest.raises(ProtocolDecodeError, match="Unsupported"):
            codec.extract_payload(_reply("x", version="2"))


# ─────────────────────────────────────────────────────────────────────────────
# Decoders
# ─────────────────────────────────────────────────────────────────────────────


class TestDecodeSearchRequests:
    def test_decodes_keyword_and_file_requests(self):
        body = """<search_requests>
<request>
<thinking>
The issue names the function.
</thinking>
<tool>Keyword</tool>
<query>
generate_report
</query>
</request>
<request>
<thinking>reporting module</thinking>
<tool>File</tool>
<query>report</query>
</request>
</search_requests>"""
        queries = codec.decode_search_requests(_reply(body))
        assert queries == [
            SearchQuery(tool=SearchToolType.KEYWORD, query="generate_report",
                        thinking="The issue names the function."),
            SearchQuery(tool=SearchToolType.FILE, query="report", thinking="reporting module"),
        ]

    def test_tool_name_is_case_insensitive(self):
        body = "<search_requests><request><tool>keyword</tool><query>x</query></request></search_requests>"
        assert codec.decode_search_requests(_reply(body))[0].tool == SearchToolType.KEYWORD

    def test_unknown_tool_raises(self):
        body = "<search_requests><request><tool>Grep</tool><query>x</query></request></search_requests>"
        with pytest.raises(ProtocolDecodeError, match="Unknown search tool 'Grep'"):
            codec.decode_search_requests(_reply(body))

    def test_empty_query_raises(self):
        body = "<search_requests><request><tool>File</tool><query> </query></request></search_requests>"
        with pytest.raises(ProtocolDecodeError, match="empty"):
            codec.decode_search_requests(_reply(body))

    def test_zero_requests_raises(self):
        with pytest.raises(ProtocolDecodeError, match="no search requests"):
            codec.decode_search_requests(_reply("<search_requests></search_requests>"))

    def test_malformed_xml_carries_cause(self):
        body = "<search_requests><request><tool>File</tool></search_requests>"
        with pytest.raises(ProtocolDecodeError) as exc_info:
            codec.decode_search_requests(_reply(body))
        assert exc_info.value.cause is not None
        assert "search_requests" in exc_info.value.raw

    def test_wrong_root_raises(self):
        with pytest.raises(ProtocolDecodeError, match="Expected <search_requests>"):
            codec.decode_search_requests(_reply("<response></response>"))


class TestDecodeIdentify:
    def test_decodes_items_and_scratch_pad(self):
        body = """<response>
<item>
<path>reports/build.py</path>
<thinking>defines generate_report</thinking>
</item>
<item>
<path>reports/rows.py</path>
<thinking>row iteration</thinking>
</item>
<scratch_pad>
Both files take part in building the report.
</scratch_pad>
</response>"""
        response = codec.decode_identify(_reply(body))
        assert [i.path for i in response.items] == ["reports/build.py", "reports/rows.py"]
        assert response.items[0].thinking == "defines generate_report"
        assert response.narrative == "Both files take part in building the report."

    def test_no_items_is_valid(self):
        response = codec.decode_identify(_reply("<response><scratch_pad>nothing</scratch_pad></response>"))
        assert response.items == []
        assert response.scratch_pad == "nothing"

    def test_blank_path_items_are_dropped(self):
        body = "<response><item><path> </path><thinking>?</thinking></item><scratch_pad/></response>"
        assert codec.decode_identify(_reply(body)).items == []


class TestDecodeDecide:
    @pytest.mark.parametrize("raw, expected", [("true", True), ("false", False), (" TRUE ", True)])
    def test_complete_flag(self, raw, expected):
        body = f"<response><suggestions>s</suggestions><complete>{raw}</complete></response>"
        assert codec.decode_decide(_reply(body)).complete is expected

    def test_non_boolean_complete_raises(self):
        body = "<response><suggestions/><complete>maybe</complete></response>"
        with pytest.raises(ProtocolDecodeError, match="'maybe'"):
            codec.decode_decide(_reply(body))

    def test_suggestions_decoded(self):
        body = "<response><suggestions>look at load_app</suggestions><complete>false</complete></response>"
        decision = codec.decode_decide(_reply(body))
        assert decision.suggestions == "look at load_app"
        assert decision.complete is False


# ─────────────────────────────────────────────────────────────────────────────
# Encoders
# ─────────────────────────────────────────────────────────────────────────────


class TestStripXmlDeclaration:
    def test_strips_leading_declaration(self):
        text = "<?xml version='1.0' encoding='UTF-8'?>\n<search_result/>"
        assert codec.strip_xml_declaration(text) == "<search_result/>"

    def test_leaves_plain_text_alone(self):
        assert codec.strip_xml_declaration("<file/>") == "<file/>"


class TestEncodeSearchResult:
    def test_tag_result_has_no_declaration(self):
        result = SearchResult.for_tag(Tag(name="generate_report", kind="function", fname="reports/build.py"))
        encoded = codec.encode_search_result(result)
        assert not encoded.startswith("<?xml")
        assert "<path>reports/build.py</path>" in encoded
        assert "<Tag>generate_report</Tag>" in encoded
        assert "This file contains a function named generate_report" in encoded

    def test_file_content_is_escaped_and_decodable(self):
        content = b"if a < b and c > d:\n    return '&'\n"
        result = SearchResult.for_file("src/cmp.py", "compare helper", content)
        decoded = codec.decode_search_result(codec.encode_search_result(result))
        assert decoded == result

    def test_decode_tolerates_declaration_preamble(self):
        result = SearchResult(path="a.py", thinking="t", snippet=TagSnippet(name="main"))
        text = "<?xml version='1.0' encoding='UTF-8'?>\n" + codec.encode_search_result(result)
        assert codec.decode_search_result(text) == result

    def test_control_characters_are_base64_encoded(self):
        result = SearchResult.for_file("bin.dat", "", b"ab\x00\x01cd")
        encoded = codec.encode_search_result(result)
        assert '<FileContent encoding="base64">YWIAAWNk</FileContent>' in encoded
        assert codec.decode_search_result(encoded) == result

    @pytest.mark.parametrize("content", [
        b"line1\r\nline2\r\n",
        b"a\x0cb",
        b"\xff\xfe",
        b"",
    ])
    def test_file_content_bytes_survive_encoding(self, content):
        result = SearchResult.for_file("data/blob", "fixture", content)
        decoded = codec.decode_search_result(codec.encode_search_result(result))
        assert decoded.snippet.content == content

    def test_crlf_text_stays_readable(self):
        result = SearchResult.for_file("win.bat", "", b"echo hi\r\n")
        encoded = codec.encode_search_result(result)
        assert "<FileContent>echo hi&#13;\n</FileContent>" in encoded

    def test_unknown_content_encoding_raises(self):
        text = ("<search_result><path>a</path><thinking/>"
                '<snippet><FileContent encoding="hex">6162</FileContent></snippet></search_result>')
        with pytest.raises(ProtocolDecodeError, match="Unknown FileContent encoding"):
            codec.decode_search_result(text)

    def test_invalid_base64_raises(self):
        text = ("<search_result><path>a</path><thinking/>"
                '<snippet><FileContent encoding="base64">not base64!</FileContent></snippet></search_result>')
        with pytest.raises(ProtocolDecodeError, match="not valid base64") as exc_info:
            codec.decode_search_result(text)
        assert exc_info.value.cause is not None

    def test_results_joined_with_separator(self):
        results = [
            SearchResult.for_tag(Tag(name="a", kind="function", fname="x.py")),
            SearchResult.for_tag(Tag(name="b", kind="class", fname="y.py")),
        ]
        encoded = codec.encode_search_results(results, separator="\n---\n")
        assert encoded.count("<search_result>") == 2
        assert "\n---\n" in encoded


class TestEncodeFile:
    def test_file_serialises_path_and_thinking(self):
        text = File(path="reports/build.py", thinking="defines generate_report").serialise()
        assert text == (
            "<file><path>reports/build.py</path>"
            "<thinking>defines generate_report</thinking></file>"
        )

    def test_serialise_files_joins_in_order(self):
        files = [File(path="a.py"), File(path="b.py")]
        text = File.serialise_files(files)
        assert text.index("a.py") < text.index("b.py")
        assert text.count("<file>") == 2

    def test_carriage_return_in_thinking_is_escaped(self):
        text = File(path="a.py", thinking="first\r\nsecond").serialise()
        assert "<thinking>first&#13;\nsecond</thinking>" in text
