"""Document views the scanner reads from and writes markers into.

The scanner never touches a concrete tree. It talks to a :class:`DocumentView`,
which exposes read-only traversal plus :meth:`DocumentView.insert_marker`.
:class:`SoupDocument` implements the view on top of BeautifulSoup so pages can
be annotated server-side, from the CLI and in tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Protocol

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

logger = logging.getLogger(__name__)

MARKER_WRAPPER_CLASS = "guide-term-wrapper"
MARKER_ICON_CLASS = "guide-term-icon"
MARKER_ICON_CONTAINER_CLASS = "guide-term-icon-container"
MARKER_TOOLTIP_CLASS = "guide-term-tooltip"
MARKER_ROOT_ATTR = "data-guide-root"

MARKER_CLASSES = frozenset(
    {MARKER_WRAPPER_CLASS, MARKER_ICON_CLASS, MARKER_ICON_CONTAINER_CLASS, MARKER_TOOLTIP_CLASS}
)

# Anything inside these belongs to the engine, never to the host page.
OWN_MARKUP_SELECTOR = ", ".join(
    [f"[{MARKER_ROOT_ATTR}]"] + [f".{name}" for name in sorted(MARKER_CLASSES)]
)


@dataclass(frozen=True)
class MarkerPayload:
    entry_id: str
    trigger: str
    title: str
    term: str = ""


@dataclass(frozen=True)
class ExistingMarker:
    """A marker found in the document: its host element and what it annotates."""

    element: Any
    entry_id: str
    term: str


class DocumentView(Protocol):
    """Capability the scanner and coordinator need from a document tree.

    ``leaf`` handles are text nodes, ``element`` handles are their containers.
    Selectors are CSS selectors.
    """

    def text_leaves(self) -> List[Any]:
        ...

    def leaf_text(self, leaf: Any) -> str:
        ...

    def leaf_parent(self, leaf: Any) -> Optional[Any]:
        ...

    def tag_name(self, element: Any) -> str:
        ...

    def closest(self, element: Any, selector: str) -> Optional[Any]:
        ...

    def attribute(self, element: Any, name: str) -> Optional[str]:
        ...

    def element_text(self, element: Any) -> str:
        ...

    def child_count(self, element: Any) -> int:
        ...

    def has_marker(self, element: Any) -> bool:
        ...

    def exists(self, selector: str) -> bool:
        ...

    def content_size(self) -> int:
        ...

    def is_marker_node(self, node: Any) -> bool:
        ...

    def is_element(self, node: Any) -> bool:
        ...

    def existing_markers(self) -> List[ExistingMarker]:
        ...

    def insert_marker(self, leaf: Any, payload: MarkerPayload) -> bool:
        ...

    def remove_markers(self) -> int:
        ...


class SoupDocument:
    """:class:`DocumentView` over a BeautifulSoup tree."""

    def __init__(self, source: BeautifulSoup | str, parser: str = "html.parser") -> None:
        if isinstance(source, BeautifulSoup):
            self.soup = source
        else:
            self.soup = BeautifulSoup(source, parser)

    @property
    def root(self) -> Tag:
        return self.soup.body or self.soup

    def to_html(self) -> str:
        return str(self.soup)

    # --- traversal ---------------------------------------------------------

    def iter_text_leaves(self) -> Iterator[NavigableString]:
        for node in self.root.find_all(string=True):
            if isinstance(node, PreformattedString):
                continue
            yield node

    def text_leaves(self) -> List[NavigableString]:
        # Snapshot; marker insertion later replaces nodes in the live tree.
        return list(self.iter_text_leaves())

    def leaf_text(self, leaf: NavigableString) -> str:
        return str(leaf)

    def leaf_parent(self, leaf: NavigableString) -> Optional[Tag]:
        return leaf.parent

    def tag_name(self, element: Tag) -> str:
        return (element.name or "").upper()

    def closest(self, element: Tag, selector: str) -> Optional[Tag]:
        return element.css.closest(selector)

    def attribute(self, element: Tag, name: str) -> Optional[str]:
        value = element.get(name)
        if value is None:
            return None
        if isinstance(value, list):
            return " ".join(value)
        return str(value)

    def element_text(self, element: Tag) -> str:
        return element.get_text()

    def child_count(self, element: Tag) -> int:
        return len(element.contents)

    def has_marker(self, element: Tag) -> bool:
        return element.select_one(f".{MARKER_ICON_CLASS}") is not None

    def exists(self, selector: str) -> bool:
        return self.root.select_one(selector) is not None

    def content_size(self) -> int:
        return sum(1 for leaf in self.iter_text_leaves() if leaf.strip())

    def is_element(self, node: Any) -> bool:
        return isinstance(node, Tag)

    def is_marker_node(self, node: Any) -> bool:
        if not isinstance(node, Tag):
            return False
        if node.has_attr(MARKER_ROOT_ATTR):
            return True
        classes = node.get("class") or []
        if isinstance(classes, str):
            classes = classes.split()
        return any(name in MARKER_CLASSES for name in classes)

    def existing_markers(self) -> List[ExistingMarker]:
        markers: List[ExistingMarker] = []
        for wrapper in self.root.select(f".{MARKER_WRAPPER_CLASS}[{MARKER_ROOT_ATTR}]"):
            # markup written before the term attribute existed only has the trigger
            term = wrapper.get("data-guide-term") or wrapper.get("data-guide-trigger") or ""
            markers.append(
                ExistingMarker(
                    element=wrapper.parent or wrapper,
                    entry_id=str(wrapper.get("data-guide-entry-id") or ""),
                    term=str(term),
                )
            )
        return markers

    # --- mutation ----------------------------------------------------------

    def insert_marker(self, leaf: NavigableString, payload: MarkerPayload) -> bool:
        """Wrap ``leaf`` in a marker; ``False`` if its parent already has one."""
        parent = leaf.parent
        if parent is None:
            return False
        if self.has_marker(parent):
            return False

        wrapper = self.soup.new_tag(
            "span",
            attrs={
                "class": MARKER_WRAPPER_CLASS,
                MARKER_ROOT_ATTR: "true",
                "data-guide-trigger": payload.trigger,
                "data-guide-entry-id": payload.entry_id,
                "data-guide-term": payload.term,
            },
        )
        container = self.soup.new_tag("span", attrs={"class": MARKER_ICON_CONTAINER_CLASS})
        icon = self.soup.new_tag(
            "span",
            attrs={
                "class": MARKER_ICON_CLASS,
                "role": "button",
                "tabindex": "0",
                "title": f"Glossary: {payload.title}",
            },
        )
        container.append(icon)
        wrapper.append(container)

        leaf.replace_with(wrapper)
        wrapper.append(leaf)
        return True

    def remove_markers(self) -> int:
        """Unwrap every marker and restore the original text nodes."""
        removed = 0
        for wrapper in self.soup.select(f"[{MARKER_ROOT_ATTR}]"):
            parent = wrapper.parent
            for container in wrapper.select(f".{MARKER_ICON_CONTAINER_CLASS}"):
                container.decompose()
            wrapper.unwrap()
            if parent is not None:
                parent.smooth()
            removed += 1

        # Standalone icons left behind by partially removed markup
        for icon in self.soup.select(f".{MARKER_ICON_CLASS}"):
            icon.decompose()
        if removed:
            logger.debug("Removed %d glossary markers", removed)
        return removed
