"""Single-pass glossary scanner.

A pass walks every text leaf of the document once, in document order, and
compares the normalized leaf text with the term index. Matches are collected
first and markers are inserted afterwards, so the tree is never modified while
it is being traversed.

Deduplication state lives only for the duration of a pass: a term is shown at
most once per region, keyed both by entry id and by normalized trigger (two
entries sharing an alias must not both claim the same region). Across passes
the only memory is the markers already present in the tree, which makes
repeated passes idempotent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Set, Tuple

from .document import OWN_MARKUP_SELECTOR, DocumentView, MarkerPayload
from .models import MATCH_STARTS_WITH, GlossaryEntry, Match
from .normalizer import normalize_text, plural_match, strip_trailing_decoration
from .regions import MAX_CONTAINER_CHARS, is_likely_label_context, region_for_element
from .term_index import TermIndex, TermIndexCache

logger = logging.getLogger(__name__)
detail_logger = logging.getLogger("detail")

SKIP_TAGS = frozenset(
    {
        "SCRIPT", "STYLE", "NOSCRIPT", "IFRAME", "OBJECT",
        "EMBED", "SVG", "CODE", "PRE", "INPUT", "TEXTAREA", "SELECT",
    }
)
EDITABLE_SELECTOR = '[contenteditable="true"]'


@dataclass
class ScannerSettings:
    min_length: int = 2
    max_length: int = 100
    max_container_chars: int = MAX_CONTAINER_CHARS


def term_matches(candidate: str, term: str, match_type: str) -> bool:
    """Compare a prepared candidate with one index term."""
    if match_type == MATCH_STARTS_WITH:
        return candidate.startswith(term)
    # exact, tolerant of simple plurals; "company" must not match
    # "company domain name"
    return plural_match(candidate, term)


class AnnotationScanner:
    """Find and annotate glossary terms in a :class:`DocumentView`."""

    def __init__(
        self,
        document: DocumentView,
        cache: Optional[TermIndexCache] = None,
        settings: Optional[ScannerSettings] = None,
    ) -> None:
        self.document = document
        self.cache = cache if cache is not None else TermIndexCache()
        self.settings = settings or ScannerSettings()
        self.is_scanning = False

    # --- read phase --------------------------------------------------------

    def _leaf_container(self, leaf: Any) -> Optional[Any]:
        """Return the parent element of ``leaf`` if the leaf is worth matching."""
        doc = self.document
        text = doc.leaf_text(leaf).strip()
        if len(text) < self.settings.min_length or len(text) > self.settings.max_length:
            return None

        parent = doc.leaf_parent(leaf)
        if parent is None:
            return None
        if doc.tag_name(parent) in SKIP_TAGS:
            return None
        if doc.closest(parent, EDITABLE_SELECTOR) is not None:
            return None
        if doc.closest(parent, OWN_MARKUP_SELECTOR) is not None:
            return None
        if doc.has_marker(parent):
            return None
        return parent

    def _shown_by_existing_markers(self) -> Set[Tuple[str, str]]:
        """Dedup keys claimed by markers a previous pass left in the document."""
        shown: Set[Tuple[str, str]] = set()
        for marker in self.document.existing_markers():
            region = region_for_element(self.document, marker.element)
            if marker.entry_id:
                shown.add((region, f"entry:{marker.entry_id}"))
            term = normalize_text(marker.term)
            if term:
                shown.add((region, f"term:{term}"))
        return shown

    def scan(self, term_index: TermIndex) -> List[Match]:
        """Return the matches for one pass without modifying the document."""
        if not term_index:
            return []

        doc = self.document
        shown = self._shown_by_existing_markers()
        matches: List[Match] = []

        for leaf in doc.text_leaves():
            parent = self._leaf_container(leaf)
            if parent is None:
                continue

            raw_text = doc.leaf_text(leaf).strip()
            normalized = normalize_text(raw_text)
            if not normalized:
                continue
            candidate = strip_trailing_decoration(normalized)

            region: Optional[str] = None
            for row in term_index:
                entry = row.entry
                if not term_matches(candidate, row.term, entry.match_type):
                    continue

                if region is None:
                    region = region_for_element(doc, parent)
                entry_key = (region, f"entry:{entry.id}")
                term_key = (region, f"term:{row.term}")
                if entry_key in shown or term_key in shown:
                    continue

                if not is_likely_label_context(
                    doc, parent, raw_text, self.settings.max_container_chars
                ):
                    continue

                shown.add(entry_key)
                shown.add(term_key)
                matches.append(
                    Match(
                        leaf=leaf,
                        entry=entry,
                        region=region,
                        matched_text=raw_text,
                        term=row.term,
                    )
                )
                detail_logger.info(
                    "Match: %r -> %s (region: %s)", raw_text, entry.display_title, region
                )
                break

        return matches

    # --- write phase -------------------------------------------------------

    def apply_index(self, term_index: TermIndex) -> List[Match]:
        """Scan with ``term_index`` and insert a marker for every match.

        Returns the matches that actually received a marker. A call made while
        another pass is running is dropped; the next scheduled pass picks up
        whatever it would have found.
        """
        if self.is_scanning:
            logger.debug("Scan already in progress, request dropped")
            return []

        self.is_scanning = True
        try:
            matches = self.scan(term_index)
            applied: List[Match] = []
            for match in matches:
                payload = MarkerPayload(
                    entry_id=match.entry.id,
                    trigger=match.entry.trigger or "",
                    title=match.entry.display_title,
                    term=match.term,
                )
                try:
                    inserted = self.document.insert_marker(match.leaf, payload)
                except ValueError as exc:
                    # leaf detached by the host between read and write phase
                    logger.warning("Could not annotate %r: %s", match.matched_text, exc)
                    continue
                if inserted:
                    applied.append(match)
            if applied:
                logger.info("Applied %d glossary annotations", len(applied))
            return applied
        finally:
            self.is_scanning = False

    def apply(self, entries: Sequence[GlossaryEntry]) -> List[Match]:
        """Build (or reuse) the term index for ``entries`` and annotate."""
        term_index = self.cache.get_or_build(entries)
        if not term_index:
            logger.debug("No enabled glossary terms, nothing to annotate")
            return []
        return self.apply_index(term_index)

    def remove(self) -> int:
        """Remove every annotation this engine inserted."""
        return self.document.remove_markers()
