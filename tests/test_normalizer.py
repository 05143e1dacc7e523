import pytest

from glossary.normalizer import (
    normalize_text,
    plural_match,
    singularize,
    strip_trailing_decoration,
)


def test_normalize_text_trims_and_lowercases():
    assert normalize_text("  Deal Stage \n") == "deal stage"


def test_normalize_text_removes_zero_width_characters():
    assert normalize_text("Pipe\u200bline\ufeff") == "pipeline"
    assert normalize_text("\u200dLifecycle stage") == "lifecycle stage"


def test_normalize_text_non_string_is_empty():
    assert normalize_text(None) == ""  # type: ignore[arg-type]
    assert normalize_text(42) == ""  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "text, expected",
    [
        ("deal stage:", "deal stage"),
        ("close date ?", "close date"),
        ("contacts (2)", "contacts"),
        ("tickets (12) ", "tickets"),
        ("deal stage", "deal stage"),
        ("(2)", ""),
        ("", ""),
    ],
)
def test_strip_trailing_decoration(text, expected):
    assert strip_trailing_decoration(text) == expected


def test_strip_trailing_decoration_keeps_inner_text():
    assert strip_trailing_decoration("amount (usd)") == "amount (usd)"


@pytest.mark.parametrize(
    "a, b",
    [
        ("deal", "deal"),
        ("deals", "deal"),
        ("boxes", "box"),
        ("companies", "company"),
    ],
)
def test_plural_match_is_symmetric(a, b):
    assert plural_match(a, b)
    assert plural_match(b, a)


def test_plural_match_rejects_other_words():
    assert not plural_match("company domain name", "company")
    assert not plural_match("dealer", "deal")
    assert not plural_match("", "deal")
    assert not plural_match("deal", "")


def test_plural_match_has_no_irregular_plurals():
    assert not plural_match("people", "person")


@pytest.mark.parametrize(
    "word, expected",
    [
        ("companies", "company"),
        ("contacts", "contact"),
        ("deal", "deal"),
        ("business", "business"),
        ("", ""),
    ],
)
def test_singularize(word, expected):
    assert singularize(word) == expected
