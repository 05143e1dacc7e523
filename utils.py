"""Shared helpers used by the glossary and rules loaders.

Both storage layers read JSON exported by the admin panel or synced from the
backend. Over time these files were written by different tools, so decoding
has to tolerate a UTF-8 BOM, UTF-16 and stray control characters. The helpers
here must stay backwards compatible because
``glossary.storage``, ``rules.loader`` and the CLI all depend on them.
"""

# utils.py
import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Optional

logger = logging.getLogger(__name__)

_ENCODINGS = ("utf-8-sig", "utf-16")


def decode_json_bytes(raw: bytes) -> str:
    """Decode ``raw`` trying the encodings seen in exported files."""
    for enc in _ENCODINGS:
        try:
            return raw.decode(enc)
        except UnicodeDecodeError:
            continue
    return raw.decode("utf-8", errors="replace")


def load_json_document(path: str | Path, *, label: str = "JSON") -> Optional[Any]:
    """Return the parsed JSON document at ``path`` or ``None``.

    ``None`` means "nothing usable": the file is missing, empty or not JSON even
    after control characters were removed. Callers turn that into an empty
    collection.
    """
    p = Path(path)
    if not p.exists():
        logger.warning("%s file %s not found", label, p)
        return None

    text = decode_json_bytes(p.read_bytes())
    if not text.strip():
        return None

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        cleaned = "".join(ch for ch in text if ch >= " " or ch in "\n\t\r")
        if not cleaned.strip():
            return None
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as exc:
            logger.error("%s file %s is not valid JSON: %s", label, p, exc)
            return None


def dedupe_preserve_order(items: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    result: List[str] = []
    for item in items:
        if not item:
            continue
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def coerce_str_list(raw: object) -> List[str]:
    """Return ``raw`` as a list of stripped, non-empty strings.

    Accepts a single string, any list/tuple/set, or ``None``. Non-string items
    are converted with ``str``.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        values: Iterable[object] = [raw]
    elif isinstance(raw, (list, tuple, set)):
        values = raw
    else:
        values = [raw]
    result: List[str] = []
    for item in values:
        if item is None:
            continue
        text = item.strip() if isinstance(item, str) else str(item).strip()
        if text:
            result.append(text)
    return result


def coerce_bool(raw: object, default: bool = True) -> bool:
    """Interpret loosely typed flags from JSON (``"false"``, ``0``, ``None``)."""
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return raw != 0
    if isinstance(raw, str):
        value = raw.strip().lower()
        if value in {"false", "0", "no", "off", ""}:
            return False
        if value in {"true", "1", "yes", "on"}:
            return True
    return default
