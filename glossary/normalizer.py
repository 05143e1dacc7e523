"""Helpers to normalize terms before comparison."""

from __future__ import annotations

import re
import unicodedata

_TRAILING_PUNCT_RE = re.compile(r"\s*[:?]\s*$")
_TRAILING_COUNT_RE = re.compile(r"\s*\(\d+\)\s*$")


def normalize_text(text: str) -> str:
    """Return a standardized representation of ``text`` for matching.

    Zero-width and other invisible format characters (Unicode category ``Cf``)
    are removed before trimming and lower-casing. Host pages inject them into
    labels, which would otherwise defeat plain equality.
    """

    if not isinstance(text, str):
        return ""

    cleaned = "".join(ch for ch in text if unicodedata.category(ch) != "Cf")
    return cleaned.strip().lower()


def strip_trailing_decoration(text: str) -> str:
    """Drop a trailing ``:``/``?`` and a trailing count such as ``(3)``.

    ``"deal stage:"`` becomes ``"deal stage"`` and ``"contacts (2)"`` becomes
    ``"contacts"``. Works on normalized candidates only.
    """

    if not text:
        return ""
    stripped = _TRAILING_PUNCT_RE.sub("", text)
    return _TRAILING_COUNT_RE.sub("", stripped)


def _is_plural_of(plural: str, singular: str) -> bool:
    if plural == singular + "s" or plural == singular + "es":
        return True
    return singular.endswith("y") and plural == singular[:-1] + "ies"


def plural_match(candidate: str, term: str) -> bool:
    """Return ``True`` if ``candidate`` and ``term`` are equal up to a plural.

    Deliberately approximate: ``s``/``es``/``ies`` suffixes only, checked in
    both directions. Irregular plurals are not handled.
    """

    if not candidate or not term:
        return False
    if candidate == term:
        return True
    return _is_plural_of(candidate, term) or _is_plural_of(term, candidate)


def singularize(word: str) -> str:
    """Reduce ``word`` with the same suffix heuristic as :func:`plural_match`."""

    if not word:
        return ""
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith("s") and not word.endswith("ss") and len(word) > 1:
        return word[:-1]
    return word
