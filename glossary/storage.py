"""Storage helpers for glossary entries and the persisted term index.

The loader tolerates the schema variants that the admin panel produced over
time: a plain list of entries, a mapping keyed by entry id, or an object with
an ``entries`` list; camelCase or snake_case keys; and legacy records that keep
the trigger under ``term``. Saving always emits the current camelCase list.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from utils import coerce_bool, coerce_str_list, dedupe_preserve_order, load_json_document

from .models import MATCH_EXACT, MATCH_TYPES, GlossaryEntry, TermIndexEntry
from .term_index import Fingerprint, TermIndex

logger = logging.getLogger(__name__)


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    text = text.strip()
    return text or None


def entry_from_mapping(raw: Mapping[str, Any], fallback_id: Optional[str] = None) -> Optional[GlossaryEntry]:
    """Convert one stored record into a :class:`GlossaryEntry`.

    Returns ``None`` for records without any usable identifier or title.
    """
    entry_id = _optional_text(_pick(raw, "id", "entryId", "entry_id")) or fallback_id
    trigger = _optional_text(_pick(raw, "trigger", "term"))
    title = _optional_text(_pick(raw, "title", "name")) or trigger
    if not entry_id or not title:
        logger.warning("Skipping glossary record without id or title: %r", dict(raw))
        return None

    match_type = str(_pick(raw, "matchType", "match_type") or MATCH_EXACT).strip().lower()
    if match_type not in MATCH_TYPES:
        logger.info("Unknown match type %r for entry %s, using exact", match_type, entry_id)
        match_type = MATCH_EXACT

    return GlossaryEntry(
        id=entry_id,
        title=title,
        trigger=trigger,
        aliases=dedupe_preserve_order(coerce_str_list(raw.get("aliases"))),
        match_type=match_type,
        category=_optional_text(raw.get("category")) or "general",
        object_type=_optional_text(_pick(raw, "objectType", "object_type")),
        property_group=_optional_text(_pick(raw, "propertyGroup", "property_group")),
        enabled=coerce_bool(raw.get("enabled"), default=True),
        parent_id=_optional_text(_pick(raw, "parentId", "parent_id")),
        definition=str(raw.get("definition") or ""),
        link=_optional_text(raw.get("link")),
    )


def entries_from_data(data: Any) -> List[GlossaryEntry]:
    """Convert already parsed JSON (any supported layout) into entries."""
    records: List[tuple[Optional[str], Any]] = []
    if isinstance(data, dict) and isinstance(data.get("entries"), list):
        records = [(None, item) for item in data["entries"]]
    elif isinstance(data, dict):
        records = [(str(key), item) for key, item in data.items()]
    elif isinstance(data, list):
        records = [(None, item) for item in data]
    else:
        logger.error("Unexpected glossary format: %s", type(data).__name__)
        return []

    entries: List[GlossaryEntry] = []
    seen_ids: set[str] = set()
    for fallback_id, item in records:
        if not isinstance(item, dict):
            logger.warning("Skipping non-object glossary record: %r", item)
            continue
        entry = entry_from_mapping(item, fallback_id)
        if entry is None:
            continue
        if entry.id in seen_ids:
            logger.warning("Duplicate glossary id %s, keeping the first record", entry.id)
            continue
        seen_ids.add(entry.id)
        entries.append(entry)
    return entries


def load_glossary(path: str | Path) -> List[GlossaryEntry]:
    """Return the entries stored at ``path`` or an empty list if not found."""
    data = load_json_document(path, label="Glossary")
    if data is None:
        return []
    return entries_from_data(data)


def entry_to_mapping(entry: GlossaryEntry) -> Dict[str, Any]:
    obj: Dict[str, Any] = {"id": entry.id, "title": entry.title}
    if entry.trigger:
        obj["trigger"] = entry.trigger
    if entry.aliases:
        obj["aliases"] = entry.aliases[:]
    obj["matchType"] = entry.match_type
    obj["category"] = entry.category
    if entry.object_type:
        obj["objectType"] = entry.object_type
    if entry.property_group:
        obj["propertyGroup"] = entry.property_group
    obj["enabled"] = entry.enabled
    if entry.parent_id:
        obj["parentId"] = entry.parent_id
    if entry.definition:
        obj["definition"] = entry.definition
    if entry.link:
        obj["link"] = entry.link
    return obj


def save_glossary(entries: Iterable[GlossaryEntry], path: str | Path) -> None:
    """Persist ``entries`` as a JSON list at ``path``."""
    p = Path(path)
    data = [entry_to_mapping(entry) for entry in entries]
    p.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def validate_entries(entries: Iterable[GlossaryEntry]) -> None:
    """Raise ``ValueError`` if the collection contains malformed entries."""
    seen: set[str] = set()
    for entry in entries:
        if not isinstance(entry.id, str) or not entry.id:
            raise ValueError(f"Invalid entry id: {entry.id!r}")
        if entry.id in seen:
            raise ValueError(f"Duplicate entry id: {entry.id}")
        seen.add(entry.id)
        if not isinstance(entry.title, str) or not entry.title.strip():
            raise ValueError(f"Missing title for {entry.id}")
        if entry.trigger is not None and not isinstance(entry.trigger, str):
            raise ValueError(f"Invalid trigger for {entry.id}")
        if not isinstance(entry.aliases, list):
            raise ValueError(f"Invalid aliases for {entry.id}")
        for alias in entry.aliases:
            if not isinstance(alias, str):
                raise ValueError(f"Invalid alias for {entry.id}: {alias!r}")
        if entry.match_type not in MATCH_TYPES:
            raise ValueError(f"Invalid match type for {entry.id}: {entry.match_type!r}")
        if not isinstance(entry.enabled, bool):
            raise ValueError(f"Invalid enabled flag for {entry.id}")


class JsonTermIndexStore:
    """Persist the term index as ``{"fingerprint": ..., "terms": [[term, id], ...]}``.

    Entries themselves are not duplicated in the file; rows are resolved
    against the live collection on load. Any mismatch is a cache miss.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(
        self, fingerprint: Fingerprint, entries_by_id: Dict[str, GlossaryEntry]
    ) -> Optional[TermIndex]:
        if not self.path.exists():
            return None
        data = load_json_document(self.path, label="Term index cache")
        if not isinstance(data, dict) or data.get("fingerprint") != fingerprint:
            return None
        terms = data.get("terms")
        if not isinstance(terms, list):
            return None

        rows: List[TermIndexEntry] = []
        for item in terms:
            if not isinstance(item, list) or len(item) != 2:
                return None
            term, entry_id = item
            entry = entries_by_id.get(str(entry_id))
            if entry is None or not isinstance(term, str):
                logger.info("Term index cache references unknown entry %r, rebuilding", entry_id)
                return None
            rows.append(TermIndexEntry(term=term, entry=entry))
        return tuple(rows)

    def save(self, fingerprint: Fingerprint, index: TermIndex) -> None:
        data = {
            "fingerprint": fingerprint,
            "terms": [[row.term, row.entry.id] for row in index],
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            logger.warning("Term index cache %s could not be written: %s", self.path, exc)
