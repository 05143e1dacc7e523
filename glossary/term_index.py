"""Term index construction and caching.

The scanner walks the index once per text leaf, so the index has to be sorted
longest term first: "Deal Stage" must be tried before "Deal". Building it is
cheap but runs on every navigation, therefore the last index is cached keyed by
a fingerprint of the enabled entries. Hosts that want to survive page loads can
attach a persistent store (see :class:`glossary.storage.JsonTermIndexStore`).
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import replace
from typing import Dict, Iterable, List, NewType, Optional, Protocol, Sequence, Tuple

from .models import GlossaryEntry, TermIndexEntry
from .normalizer import normalize_text

logger = logging.getLogger(__name__)

Fingerprint = NewType("Fingerprint", str)
TermIndex = Tuple[TermIndexEntry, ...]

MIN_TERM_LENGTH = 2


class TermIndexStore(Protocol):
    """Persistent backing for :class:`TermIndexCache`."""

    def load(
        self, fingerprint: Fingerprint, entries_by_id: Dict[str, GlossaryEntry]
    ) -> Optional[TermIndex]:
        ...

    def save(self, fingerprint: Fingerprint, index: TermIndex) -> None:
        ...


def enabled_entries(entries: Iterable[GlossaryEntry]) -> List[GlossaryEntry]:
    return [entry for entry in entries if entry.enabled is not False]


def entry_triggers(entry: GlossaryEntry) -> List[str]:
    """Return trigger and aliases of ``entry``; empty for display-only entries."""
    if not entry.trigger or not entry.trigger.strip():
        return []
    triggers = [entry.trigger]
    triggers.extend(alias for alias in entry.aliases if alias and alias.strip())
    return triggers


def compute_fingerprint(entries: Iterable[GlossaryEntry]) -> Fingerprint:
    """Return a key that changes whenever an index-relevant field changes.

    Only enabled entries contribute, so toggling ``enabled`` invalidates the
    key just like adding, removing or re-triggering an entry.
    """
    parts: List[str] = []
    for entry in enabled_entries(entries):
        parts.append(
            f"{entry.id}:{entry.trigger or ''}:{','.join(entry.aliases)}:{entry.match_type}"
        )
    digest = hashlib.sha1("|".join(parts).encode("utf-8")).hexdigest()
    return Fingerprint(digest)


def build_term_index(
    entries: Sequence[GlossaryEntry],
    cache: Optional["TermIndexCache"] = None,
) -> TermIndex:
    """Return the sorted term index for ``entries``.

    With ``cache`` given, a cached index for the same fingerprint is reused.
    """
    if cache is not None:
        return cache.get_or_build(entries)
    return _build(entries)


def _build(entries: Sequence[GlossaryEntry]) -> TermIndex:
    rows: List[TermIndexEntry] = []
    for entry in enabled_entries(entries):
        for trigger in entry_triggers(entry):
            term = normalize_text(trigger)
            if len(term) < MIN_TERM_LENGTH:
                continue
            rows.append(TermIndexEntry(term=term, entry=entry))

    # sorted() is stable: equal lengths keep collection order
    rows = sorted(rows, key=lambda row: len(row.term), reverse=True)
    logger.debug("Built term index with %d terms", len(rows))
    return tuple(rows)


def _rebind(index: TermIndex, entries: Sequence[GlossaryEntry]) -> TermIndex:
    """Point cached rows at the current entry objects.

    The fingerprint ignores display fields, so a hit may come with fresh
    entries whose title or definition changed. Returns ``index`` itself when
    every row already refers to the current object.
    """
    current = {entry.id: entry for entry in enabled_entries(entries)}
    if all(current.get(row.entry.id, row.entry) is row.entry for row in index):
        return index
    return tuple(
        replace(row, entry=current.get(row.entry.id, row.entry)) for row in index
    )


class TermIndexCache:
    """Single-slot cache for the term index, keyed by fingerprint."""

    def __init__(self, store: Optional[TermIndexStore] = None) -> None:
        self.store = store
        self._fingerprint: Optional[Fingerprint] = None
        self._index: Optional[TermIndex] = None
        self.builds = 0

    @property
    def fingerprint(self) -> Optional[Fingerprint]:
        return self._fingerprint

    def invalidate(self) -> None:
        self._fingerprint = None
        self._index = None
        logger.debug("Term index cache invalidated")

    def get_or_build(self, entries: Sequence[GlossaryEntry]) -> TermIndex:
        fingerprint = compute_fingerprint(entries)
        if self._index is not None and self._fingerprint == fingerprint:
            self._index = _rebind(self._index, entries)
            return self._index

        index: Optional[TermIndex] = None
        if self.store is not None:
            entries_by_id = {entry.id: entry for entry in enabled_entries(entries)}
            index = self.store.load(fingerprint, entries_by_id)
            if index is not None:
                logger.debug("Term index served from store (%s)", fingerprint[:8])

        if index is None:
            index = _build(entries)
            self.builds += 1
            if self.store is not None:
                self.store.save(fingerprint, index)

        self._fingerprint = fingerprint
        self._index = index
        return index
