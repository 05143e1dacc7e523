"""Page guide facade used by hosts.

A :class:`PageGuide` holds the content collections delivered by storage
(banners, reference cards, glossary entries) together with the engine
settings, and answers the two questions a host asks on every record page:
which banners/cards/tags apply to this record, and which labels on the page
get a glossary annotation.
"""

from __future__ import annotations

import configparser
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Sequence

from glossary.coordinator import MutationCoordinator, Scheduler
from glossary.document import DocumentView, SoupDocument
from glossary.models import GlossaryEntry, Match
from glossary.scanner import AnnotationScanner
from glossary.storage import JsonTermIndexStore, load_glossary
from glossary.term_index import TermIndexCache
from rules.evaluator import evaluate_rules, select_index_tags
from rules.loader import load_rules
from rules.models import RuleContext, RuleSet
from runtime_config import EngineSettings, load_engine_settings

logger = logging.getLogger(__name__)


@dataclass
class GuideResult:
    banners: List[RuleSet] = field(default_factory=list)
    cards: List[RuleSet] = field(default_factory=list)
    tags: List[RuleSet] = field(default_factory=list)


class PageGuide:
    def __init__(
        self,
        banners: Sequence[RuleSet] = (),
        cards: Sequence[RuleSet] = (),
        entries: Sequence[GlossaryEntry] = (),
        settings: Optional[EngineSettings] = None,
    ) -> None:
        self.banners: List[RuleSet] = list(banners)
        self.cards: List[RuleSet] = list(cards)
        self.entries: List[GlossaryEntry] = list(entries)
        self.settings = settings or EngineSettings()

        store = None
        if self.settings.index_cache_path is not None:
            store = JsonTermIndexStore(self.settings.index_cache_path)
        self.index_cache = TermIndexCache(store)

    @classmethod
    def from_files(
        cls,
        *,
        banners_path: Optional[Path] = None,
        cards_path: Optional[Path] = None,
        glossary_path: Optional[Path] = None,
        cfg: Optional[configparser.ConfigParser] = None,
    ) -> "PageGuide":
        """Load the collections from JSON exports; absent paths stay empty."""
        settings = load_engine_settings(cfg)
        banners = load_rules(banners_path, label="banners") if banners_path else []
        cards = load_rules(cards_path, label="cards") if cards_path else []
        entries = load_glossary(glossary_path) if glossary_path else []
        logger.info(
            "Page guide loaded: %d banners, %d cards, %d glossary entries",
            len(banners),
            len(cards),
            len(entries),
        )
        return cls(banners, cards, entries, settings)

    def update_entries(self, entries: Sequence[GlossaryEntry]) -> None:
        """Replace the glossary collection, e.g. after a storage change event."""
        self.entries = list(entries)
        self.index_cache.invalidate()

    # --- rules -------------------------------------------------------------

    def banners_for(
        self, properties: Mapping[str, Any], context: Optional[RuleContext] = None
    ) -> List[RuleSet]:
        if not self.settings.display.show_banners:
            return []
        return evaluate_rules(
            self.banners, properties, context, default_priority=self.settings.default_priority
        )

    def cards_for(
        self, properties: Mapping[str, Any], context: Optional[RuleContext] = None
    ) -> List[RuleSet]:
        if not self.settings.display.show_cards:
            return []
        return evaluate_rules(
            self.cards, properties, context, default_priority=self.settings.card_default_priority
        )

    def tags_for(
        self, properties: Mapping[str, Any], context: Optional[RuleContext] = None
    ) -> List[RuleSet]:
        if not self.settings.display.show_index_tags:
            return []
        return select_index_tags(
            self.banners,
            properties,
            context,
            max_tags=self.settings.max_index_tags,
            default_priority=self.settings.default_priority,
        )

    def render(
        self, properties: Mapping[str, Any], context: Optional[RuleContext] = None
    ) -> GuideResult:
        return GuideResult(
            banners=self.banners_for(properties, context),
            cards=self.cards_for(properties, context),
            tags=self.tags_for(properties, context),
        )

    # --- glossary ----------------------------------------------------------

    def scanner_for(self, document: DocumentView) -> AnnotationScanner:
        return AnnotationScanner(document, cache=self.index_cache, settings=self.settings.scanner)

    def annotate(self, document: DocumentView) -> List[Match]:
        """Run one annotation pass over ``document``."""
        if not self.settings.display.show_wiki:
            return []
        return self.scanner_for(document).apply(self.entries)

    def annotate_html(self, html: str) -> tuple[str, List[Match]]:
        document = SoupDocument(html)
        matches = self.annotate(document)
        return document.to_html(), matches

    def coordinator_for(
        self,
        document: DocumentView,
        scheduler: Scheduler,
        on_matches: Optional[Callable[[List[Match]], None]] = None,
    ) -> MutationCoordinator:
        """Coordinator for a live document; it reads ``self.entries`` on every pass."""
        coordinator = MutationCoordinator(
            self.scanner_for(document),
            lambda: self.entries,
            scheduler,
            settings=self.settings.coordinator,
            enabled=lambda: self.settings.display.show_wiki,
        )
        coordinator.on_matches = on_matches
        return coordinator
