"""Tests for webhook reply decoding, extraction and text normalization."""

from __future__ import annotations

import pytest

from openlove.ai.reply_parsing import (
    MalformedBodyError,
    decode_body,
    extract_reply_text,
    normalize_reply_text,
)


@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        ({"output": "**bold** text"}, "**bold** text"),
        ("plain string", "plain string"),
        ([{"message": "hi"}], "hi"),
        ({"response": "Watch their actions."}, "Watch their actions."),
        ({"answer": "a", "output": "o"}, "o"),
        ({"ai_response": "legacy"}, "legacy"),
    ],
)
def test_extracts_known_shapes(payload, expected) -> None:
    assert extract_reply_text(payload) == expected


def test_empty_object_has_no_text() -> None:
    assert extract_reply_text({}) is None
    assert extract_reply_text([]) is None
    assert extract_reply_text(None) is None
    assert extract_reply_text("   ") is None


def test_top_level_field_wins_over_wrapper() -> None:
    payload = {"data": {"output": "nested"}, "reply": "top"}

    assert extract_reply_text(payload) == "top"


def test_nested_wrapper_is_searched_one_level_deep() -> None:
    assert extract_reply_text({"data": {"output": "nested"}}) == "nested"
    assert extract_reply_text({"body": {"answer": "from body"}}) == "from body"


def test_blank_known_field_falls_through_to_wrapper() -> None:
    payload = {"message": "", "json": {"reply": "wrapped"}}

    assert extract_reply_text(payload) == "wrapped"


def test_list_payload_uses_first_element_recursively() -> None:
    assert extract_reply_text([[{"json": {"output": "deep"}}], {"output": "second"}]) == "deep"


def test_last_resort_takes_first_string_anywhere() -> None:
    payload = {"meta": {"count": 1, "note": ""}, "choices": [{"advice": "Be honest."}]}

    assert extract_reply_text(payload) == "Be honest."


def test_non_string_known_fields_are_skipped() -> None:
    payload = {"output": 42, "result": {"status": None}, "text": "fallback text"}

    assert extract_reply_text(payload) == "fallback text"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('"quoted reply"', "quoted reply"),
        ("'single quoted'", "single quoted"),
        ('""double wrapped""', '"double wrapped"'),
        ("line one\\nline two", "line one\nline two"),
        ("col\\tvalue", "col\tvalue"),
        ("and\\/or", "and/or"),
        ("  padded  ", "padded"),
        ('  "\\n spaced \\n"  ', "spaced"),
        ('"unbalanced', '"unbalanced'),
        ("**bold** text", "**bold** text"),
    ],
)
def test_normalize_reply_text(raw: str, expected: str) -> None:
    assert normalize_reply_text(raw) == expected


def test_decode_body_parses_only_json_looking_bodies() -> None:
    assert decode_body('{"output": "x"}') == {"output": "x"}
    assert decode_body('  [1, 2]  ') == [1, 2]
    assert decode_body("Just text {not json}") == "Just text {not json}"
    assert decode_body("") is None
    assert decode_body("   ") is None


def test_decode_body_rejects_broken_json() -> None:
    with pytest.raises(MalformedBodyError):
        decode_body('{"output": ')
