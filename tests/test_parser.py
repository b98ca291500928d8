"""Tests for the Parser.

Covers:
- Every value kind, nesting, whitespace (any byte <= 0x20)
- Strict number grammar and float conversion
- String escapes, surrogate pairs, control-character rejection
- Trailing-comma leniency and the errors around it
- Error offsets for each failure, relative to the whole buffer
- require_end, start/end ranges and the reported end offset
- Depth ceiling without RecursionError
- Leak-free failure under a denying allocator
"""

from __future__ import annotations

import logging
import math

import pytest

from json_tree import CountingAllocator, Parser, ParserConfig
from json_tree.errors import AllocationError, NestingTooDeepError, ParseError
from json_tree.tree.nodes import NodeKind


@pytest.fixture
def parser() -> Parser:
    return Parser()


def _error_at(parser: Parser, text: str | bytes) -> ParseError:
    with pytest.raises(ParseError) as exc_info:
        parser.parse(text)
    return exc_info.value


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


class TestLiterals:
    @pytest.mark.parametrize(
        ("text", "kind"),
        [("null", NodeKind.NULL), ("true", NodeKind.TRUE), ("false", NodeKind.FALSE)],
    )
    def test_literal(self, parser: Parser, text: str, kind: NodeKind) -> None:
        assert parser.parse(text).root.kind is kind

    def test_true_int_value(self, parser: Parser) -> None:
        assert parser.parse("true").root.int_value == 1

    @pytest.mark.parametrize("text", ["nul", "tru", "fals", "nil", "True"])
    def test_bad_literal(self, parser: Parser, text: str) -> None:
        assert _error_at(parser, text).position == 0

    def test_literal_without_boundary_check(self, parser: Parser) -> None:
        """Only the literal itself is matched; what follows is trailing input."""
        result = parser.parse("nullx")
        assert result.root.is_null
        assert result.end == 4


class TestNumbers:
    @pytest.mark.parametrize(
        ("text", "value"),
        [
            ("0", 0.0),
            ("-0", -0.0),
            ("42", 42.0),
            ("-17", -17.0),
            ("3.25", 3.25),
            ("1e3", 1000.0),
            ("1E+3", 1000.0),
            ("25e-2", 0.25),
            ("0.1", 0.1),
            ("123456789012345", 123456789012345.0),
            ("1e300", 1e300),
        ],
    )
    def test_value(self, parser: Parser, text: str, value: float) -> None:
        root = parser.parse(text).root
        assert root.is_number
        assert root.number_value == value

    def test_negative_zero_keeps_sign(self, parser: Parser) -> None:
        assert math.copysign(1.0, parser.parse("-0").root.number_value) == -1.0

    def test_overflow_becomes_infinity(self, parser: Parser) -> None:
        assert parser.parse("1e400").root.number_value == math.inf

    def test_int_snapshot(self, parser: Parser) -> None:
        assert parser.parse("-7.9").root.int_value == -7
        assert parser.parse("1e12").root.int_value == 2**31 - 1

    @pytest.mark.parametrize(
        ("text", "position"),
        [("-", 1), ("-a", 1), ("1.", 2), ("1.e5", 2), ("1e", 2), ("1e+", 3), (".5", 0), ("+1", 0)],
    )
    def test_malformed(self, parser: Parser, text: str, position: int) -> None:
        assert _error_at(parser, text).position == position

    def test_leading_zero_stops_number(self, parser: Parser) -> None:
        """"01" is the number 0 followed by trailing input."""
        assert parser.parse("01").end == 1
        assert _error_at(parser, "[01]").position == 2


class TestStrings:
    def test_plain(self, parser: Parser) -> None:
        assert parser.parse('"hello"').root.text == "hello"

    def test_empty(self, parser: Parser) -> None:
        root = parser.parse('""').root
        assert root.is_string
        assert root.text == ""

    def test_short_escapes(self, parser: Parser) -> None:
        root = parser.parse(r'"\" \\ \/ \b \f \n \r \t"').root
        assert root.text == '" \\ / \b \f \n \r \t'

    def test_unicode_escape(self, parser: Parser) -> None:
        root = parser.parse(r'"caf\u00e9 \u20AC"').root
        assert root.text == "café €"
        assert root.text_bytes == "café €".encode()

    def test_surrogate_pair(self, parser: Parser) -> None:
        root = parser.parse(r'"\ud83d\ude00"').root
        assert root.text_bytes == b"\xf0\x9f\x98\x80"
        assert root.text == "\U0001f600"

    def test_nul_escape(self, parser: Parser) -> None:
        assert parser.parse(r'"a\u0000b"').root.text_bytes == b"a\x00b"

    def test_raw_utf8_passes_through(self, parser: Parser) -> None:
        assert parser.parse('"日本"').root.text == "日本"

    @pytest.mark.parametrize(
        ("text", "position"),
        [
            (r'"a\qb"', 2),
            (r'"\u12"', 1),
            (r'"\u12g4"', 1),
            (r'"x\udc00"', 2),
            (r'"\ud800"', 1),
            (r'"\ud800A"', 1),
            (r'"\ud800x"', 1),
            (r'"\ud800\u0041"', 1),
        ],
    )
    def test_bad_escape(self, parser: Parser, text: str, position: int) -> None:
        assert _error_at(parser, text).position == position

    def test_unterminated_reported_at_end(self, parser: Parser) -> None:
        assert _error_at(parser, '"abc').position == 4
        assert _error_at(parser, '["abc\\').position == 6

    def test_control_character_rejected(self, parser: Parser) -> None:
        err = _error_at(parser, '"a\x01b"')
        assert err.position == 2
        assert "control" in err.message

    def test_raw_newline_rejected(self, parser: Parser) -> None:
        assert _error_at(parser, '"a\nb"').position == 2

    def test_lone_surrogate_in_str_input(self, parser: Parser) -> None:
        err = _error_at(parser, '["\u00e9", "\ud800"]')
        # byte offset: the e-acute encodes to two bytes
        assert err.position == 8
        assert "surrogate" in err.message

    def test_surrogate_escaped_str_input_keeps_raw_byte(self, parser: Parser) -> None:
        assert parser.parse('"a\udc80"').root.text_bytes == b"a\x80"


# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------


class TestContainers:
    def test_empty_containers(self, parser: Parser) -> None:
        assert parser.parse("[]").root.children == ()
        assert parser.parse("{ }").root.children == ()

    def test_nested(self, parser: Parser) -> None:
        root = parser.parse('{"a": [1, {"b": [true]}], "c": "d"}').root
        assert [child.key for child in root] == ["a", "c"]
        inner = root.children[0].children[1]
        assert inner.is_object
        assert inner.children[0].key == "b"

    def test_keys_are_owned(self, parser: Parser) -> None:
        root = parser.parse('{"k": 1}').root
        assert root.child is not None
        assert not root.child.key_is_const

    def test_escaped_key(self, parser: Parser) -> None:
        root = parser.parse(r'{"a\nb": 1}').root
        assert root.children[0].key == "a\nb"

    def test_whitespace_is_any_low_byte(self, parser: Parser) -> None:
        root = parser.parse(b"\x01[\x0b1\x1f,\x202\x00]\x05").root
        assert [child.number_value for child in root] == [1.0, 2.0]

    @pytest.mark.parametrize("text", ["[1,2,]", "[1,2 , ]", '{"a":1,}', '{"a":1 , }'])
    def test_trailing_comma_accepted(self, parser: Parser, text: str) -> None:
        root = parser.parse(text).root
        assert len(root.children) in (1, 2)

    @pytest.mark.parametrize(
        ("text", "position"),
        [
            ("[1,,2]", 3),
            ("[,]", 1),
            ("[1 2]", 3),
            ("[1", 2),
            ('{"a" 1}', 5),
            ('{"a":1 "b":2}', 7),
            ("{1: 2}", 1),
            ('{"a":}', 5),
            ("{", 1),
            ("]", 0),
        ],
    )
    def test_malformed(self, parser: Parser, text: str, position: int) -> None:
        assert _error_at(parser, text).position == position

    def test_empty_input(self, parser: Parser) -> None:
        err = _error_at(parser, "   ")
        assert err.position == 3
        assert "end of input" in err.message


class TestDepth:
    def test_default_ceiling_allows_1000(self, parser: Parser) -> None:
        root = parser.parse("[" * 1000 + "]" * 1000).root
        root.delete()

    def test_default_ceiling_rejects_1001(self, parser: Parser) -> None:
        with pytest.raises(NestingTooDeepError) as exc_info:
            parser.parse("[" * 1001 + "]" * 1001)
        assert exc_info.value.position == 1000
        assert exc_info.value.max_depth == 1000

    def test_objects_count_toward_depth(self) -> None:
        parser = Parser(ParserConfig(max_depth=2))
        parser.parse('{"a": [1]}').root.delete()
        with pytest.raises(NestingTooDeepError):
            parser.parse('{"a": [{}]}')

    @pytest.mark.slow
    def test_raised_ceiling_has_no_recursion_limit(self) -> None:
        depth = 50_000
        alloc = CountingAllocator()
        parser = Parser(ParserConfig(max_depth=depth), allocator=alloc)
        parser.parse("[" * depth + "]" * depth).root.delete()
        assert alloc.live_blocks == 0


# ---------------------------------------------------------------------------
# Ranges and trailing input
# ---------------------------------------------------------------------------


class TestRanges:
    def test_end_excludes_trailing_whitespace(self, parser: Parser) -> None:
        assert parser.parse('  {"a":1}  xyz').end == 9

    def test_trailing_input_ignored_by_default(self, parser: Parser) -> None:
        assert parser.parse("[1] garbage").root.is_array

    def test_require_end_rejects_trailing_input(self) -> None:
        parser = Parser(ParserConfig(require_end=True))
        err = _error_at(parser, "[1] x")
        assert err.position == 4
        assert err.message == "unexpected trailing characters"

    def test_require_end_allows_trailing_whitespace(self) -> None:
        parser = Parser(ParserConfig(require_end=True))
        assert parser.parse("[1] \n\t").end == 3

    def test_require_end_failure_is_leak_free(self) -> None:
        alloc = CountingAllocator()
        parser = Parser(ParserConfig(require_end=True), allocator=alloc)
        with pytest.raises(ParseError):
            parser.parse('{"a": "b"} }')
        assert alloc.live_blocks == 0

    def test_start_offset(self, parser: Parser) -> None:
        text = "[1] [2]"
        first = parser.parse(text)
        second = parser.parse(text, start=first.end)
        assert second.root.children[0].number_value == 2.0
        assert second.end == 7

    def test_end_offset_limits_input(self, parser: Parser) -> None:
        err = _error_at_range(parser, "[1, 2]", 0, 4)
        assert err.position == 4

    def test_error_positions_are_absolute(self, parser: Parser) -> None:
        with pytest.raises(ParseError) as exc_info:
            parser.parse("xxxx[1,,]", start=4)
        assert exc_info.value.position == 7

    @pytest.mark.parametrize(("start", "end"), [(-1, None), (5, 2), (0, 100)])
    def test_invalid_range(self, parser: Parser, start: int, end: int | None) -> None:
        with pytest.raises(ValueError, match="invalid range"):
            parser.parse("[1, 2]", start=start, end=end)

    def test_str_offsets_are_utf8_byte_offsets(self, parser: Parser) -> None:
        assert parser.parse('"é"').end == 4

    @pytest.mark.parametrize("data", [b"[1]", bytearray(b"[1]"), memoryview(b"[1]")])
    def test_bytes_like_input(self, parser: Parser, data: bytes) -> None:
        assert parser.parse(data).root.is_array

    def test_unsupported_input_type(self, parser: Parser) -> None:
        with pytest.raises(TypeError):
            parser.parse(123)  # type: ignore[arg-type]


def _error_at_range(parser: Parser, text: str, start: int, end: int) -> ParseError:
    with pytest.raises(ParseError) as exc_info:
        parser.parse(text, start=start, end=end)
    return exc_info.value


# ---------------------------------------------------------------------------
# Failure policy
# ---------------------------------------------------------------------------


class TestLeakFreeFailure:
    @pytest.mark.parametrize("fail_after", [0, 1, 2, 500, 999, 1000])
    def test_large_array_allocation_failure(self, fail_after: int) -> None:
        """Denial at any point of a 1000-element array leaves nothing allocated."""
        text = "[" + ",".join(str(i) for i in range(1000)) + "]"
        alloc = CountingAllocator(fail_after=fail_after)
        with pytest.raises(AllocationError):
            Parser(allocator=alloc).parse(text)
        assert alloc.live_blocks == 0

    @pytest.mark.parametrize("fail_after", range(9))
    def test_object_allocation_failure(self, fail_after: int) -> None:
        alloc = CountingAllocator(fail_after=fail_after)
        with pytest.raises(AllocationError):
            Parser(allocator=alloc).parse('{"a": ["x", {"b": "y"}]}')
        assert alloc.live_blocks == 0

    @pytest.mark.parametrize("text", ['{"a": [1, 2, "x"', '[{"a": "b"}, tru]', '{"k": "v", 5}'])
    def test_syntax_error_releases_partial_tree(self, text: str) -> None:
        alloc = CountingAllocator()
        with pytest.raises(ParseError):
            Parser(allocator=alloc).parse(text)
        assert alloc.live_blocks == 0
        assert alloc.total_allocations > 0

    def test_success_allocates_exactly_the_tree(self) -> None:
        alloc = CountingAllocator()
        root = Parser(allocator=alloc).parse('{"a": "b"}').root
        # object header, member header, member text, member key
        assert alloc.live_blocks == 4
        root.delete()
        assert alloc.live_blocks == 0


class TestLogging:
    def test_failure_logged_at_debug(self, parser: Parser, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="json_tree.parser"), pytest.raises(ParseError):
            parser.parse("[1,,2]")
        assert "offset 3" in caplog.text

    def test_success_not_logged(self, parser: Parser, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="json_tree.parser"):
            parser.parse("[1, 2]")
        assert caplog.text == ""
