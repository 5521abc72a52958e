from __future__ import annotations

import pytest

from smart_search_mcp.validation import InputValidator, coerce_intent_type, sanitize_term

FORBIDDEN = ("'", '"', "\\", ";", "--", "/*", "*/", "\x00")


@pytest.mark.parametrize(
    "raw",
    [
        "Mozart'; DROP TABLE pianos; --",
        'say "hello" /* comment */ now',
        "back\\slash\x00null",
        "-'-",
        "/'*nested*'/",
        "--;--",
        "a-;-b",
    ],
)
def test_sanitized_terms_contain_no_forbidden_sequences(raw: str) -> None:
    cleaned = sanitize_term(raw)
    for seq in FORBIDDEN:
        assert seq not in cleaned


def test_sanitize_keeps_ordinary_text() -> None:
    assert sanitize_term("  Wolfgang Mozart  ") == "Wolfgang Mozart"
    assert sanitize_term("a-'-b") == "ab"


def test_empty_terms_rejected() -> None:
    result = InputValidator().validate_search_input([], "general")
    assert result.ok is False
    assert result.errors
    assert result.sanitized_terms == ()


@pytest.mark.parametrize("terms", ["mozart", None, {"term": "mozart"}])
def test_non_sequence_terms_rejected(terms: object) -> None:
    result = InputValidator().validate_search_input(terms, "general")
    assert result.ok is False
    assert result.errors


def test_terms_that_sanitize_to_nothing_are_rejected() -> None:
    result = InputValidator().validate_search_input(["'';", "--"], None)
    assert result.ok is False
    assert "No valid search terms" in result.errors[0]


def test_non_string_items_dropped_with_warning() -> None:
    result = InputValidator().validate_search_input(["mozart", 42, None], "general")
    assert result.ok is True
    assert result.sanitized_terms == ("mozart",)
    assert any("not strings" in w for w in result.warnings)


def test_term_count_capped_with_warning() -> None:
    terms = [f"term{i}" for i in range(12)]
    result = InputValidator().validate_search_input(terms, "general")
    assert result.ok is True
    assert len(result.sanitized_terms) == 10
    assert result.sanitized_terms[0] == "term0"
    assert any("first 10" in w for w in result.warnings)


def test_long_terms_truncated_with_warning() -> None:
    result = InputValidator().validate_search_input(["x" * 150], "general")
    assert result.ok is True
    assert len(result.sanitized_terms[0]) == 100
    assert any("truncated" in w for w in result.warnings)


@pytest.mark.parametrize(
    ("intent", "expected"),
    [("  News_Search ", "news_search"), (None, "general"), ("", "general"), (7, "general")],
)
def test_intent_type_coerced(intent: object, expected: str) -> None:
    assert coerce_intent_type(intent) == expected
    assert InputValidator().validate_search_input(["a b c"], intent).intent_type == expected


@pytest.mark.parametrize("name", ["pianos", "Pianos", "news_2024", "a"])
def test_valid_identifiers(name: str) -> None:
    result = InputValidator().validate_identifier(name)
    assert result.ok is True
    assert result.sanitized == name.lower()


@pytest.mark.parametrize(
    "name", ["select", "DROP", "user", "1abc", "bad-name", "drop table", "x" * 64, "", None]
)
def test_invalid_identifiers(name: object) -> None:
    result = InputValidator().validate_identifier(name)
    assert result.ok is False
    assert result.errors


def test_validate_column_names_skips_invalid_and_overlong() -> None:
    result = InputValidator().validate_column_names(["Title", "bad-name", "x" * 70, 5])
    assert result.ok is True
    assert result.sanitized == ("Title",)
    assert len(result.warnings) == 3


def test_validate_column_names_requires_one_survivor() -> None:
    assert InputValidator().validate_column_names([]).ok is False
    assert InputValidator().validate_column_names("title").ok is False
