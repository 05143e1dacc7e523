"""Dataclasses representing glossary structures."""

from dataclasses import dataclass, field
from typing import Any, List, Optional

MATCH_EXACT = "exact"
MATCH_STARTS_WITH = "starts_with"
MATCH_TYPES = (MATCH_EXACT, MATCH_STARTS_WITH)


@dataclass
class GlossaryEntry:
    """Single glossary entry.

    Attributes:
        id: Identifier that stays stable across edits.
        title: Display name shown in the tooltip header.
        trigger: Text matched on the page. Entries without a trigger are
            display-only and never annotated.
        aliases: Additional trigger strings, matched like ``trigger``.
        match_type: ``"exact"`` (plural-tolerant equality) or ``"starts_with"``.
        category: Classification used by the tooltip delegate.
        object_type: CRM object the entry belongs to, informational only.
        property_group: Property group the entry belongs to, informational only.
        enabled: Disabled entries are excluded from the term index.
        parent_id: Optional parent entry used for hierarchical display.
        definition: Body shown when the annotation is opened.
        link: Optional "learn more" URL.
    """

    id: str
    title: str
    trigger: Optional[str] = None
    aliases: List[str] = field(default_factory=list)
    match_type: str = MATCH_EXACT
    category: str = "general"
    object_type: Optional[str] = None
    property_group: Optional[str] = None
    enabled: bool = True
    parent_id: Optional[str] = None
    definition: str = ""
    link: Optional[str] = None

    @property
    def display_title(self) -> str:
        return self.title or self.trigger or self.id


@dataclass(frozen=True)
class TermIndexEntry:
    """One row of the term index: a normalized trigger and its entry."""

    term: str
    entry: GlossaryEntry


@dataclass
class Match:
    """A text leaf the scanner decided to annotate.

    ``leaf`` is whatever handle the document view uses for text nodes; the
    scanner never inspects it beyond passing it back to the view.
    """

    leaf: Any
    entry: GlossaryEntry
    region: str
    matched_text: str
    term: str
