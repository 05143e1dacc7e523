"""Page regions and the label-context heuristic.

A region is a coarse structural area of the host page. The scanner shows each
term at most once per region, so the order below matters: the first selector
with a matching ancestor wins and ``body`` is the catch-all.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Tuple

from .document import DocumentView

FALLBACK_REGION = "body"

REGION_SELECTORS: Tuple[Tuple[str, str], ...] = (
    ("left-sidebar", '[data-test-id="left-sidebar"]'),
    ("middle-pane", '[data-test-id="middle-pane"]'),
    ("right-sidebar", '[data-test-id="right-sidebar"]'),
    ("header", '[data-test-id="record-header"], header, [role="banner"]'),
    ("modal", '[role="dialog"], [class*="Modal"], [class*="modal"]'),
    ("dropdown", '[role="listbox"], [role="menu"], [class*="Dropdown"]'),
    ("filter-panel", '[data-test-id="filter-panel"], [class*="FilterEditor"]'),
    ("nav", '[data-menu-item-level="secondary"]'),
    ("table", 'table, [role="grid"], [class*="Table"]'),
    ("main", 'main, [role="main"]'),
)

PRIMARY_NAV_SELECTOR = '[data-location="vertical-nav"], [class*="VerticalNav"]'
MENU_LEVEL_SELECTOR = "[data-menu-item-level]"
MENU_LEVEL_ATTR = "data-menu-item-level"

LABEL_TAGS = frozenset(
    {
        "SPAN", "DIV", "LABEL", "TH", "TD", "DT", "DD", "LI",
        "H1", "H2", "H3", "H4", "H5", "H6", "BUTTON", "A", "P", "STRONG", "B",
        "I18N-STRING",
    }
)

UI_AREA_SELECTOR = ", ".join(
    [
        "[data-test-id]",
        "[data-selenium-test]",
        "[role]",
        '[class*="Label"]',
        '[class*="label"]',
        '[class*="Property"]',
        '[class*="Filter"]',
        '[class*="Card"]',
        '[class*="Menu"]',
    ]
)
CELL_SELECTOR = "th, td, li, dt, dd"
INTERACTIVE_SELECTOR = "button, a, [tabindex]"

MAX_CONTAINER_CHARS = 300
LARGE_CONTAINER_CHARS = 100
MIN_TEXT_RATIO = 0.2
DOMINANT_TEXT_RATIO = 0.3
SMALL_ELEMENT_CHILDREN = 5
SHORT_TEXT_CHARS = 50


def region_for_element(
    document: DocumentView,
    element: Any,
    selectors: Sequence[Tuple[str, str]] = REGION_SELECTORS,
) -> str:
    """Return the name of the region ``element`` belongs to."""
    if element is None:
        return FALLBACK_REGION
    for name, selector in selectors:
        if document.closest(element, selector) is not None:
            return name
    return FALLBACK_REGION


def _menu_level(document: DocumentView, element: Any) -> Optional[str]:
    item = document.closest(element, MENU_LEVEL_SELECTOR)
    if item is None:
        return None
    return document.attribute(item, MENU_LEVEL_ATTR)


def is_likely_label_context(
    document: DocumentView,
    element: Any,
    text: str,
    max_container_chars: int = MAX_CONTAINER_CHARS,
) -> bool:
    """Decide whether ``text`` inside ``element`` reads like a field label.

    False negatives are cheaper than false positives: an unannotated label is
    a small gap, an icon in the middle of prose is noise.
    """
    if element is None:
        return False

    if document.closest(element, PRIMARY_NAV_SELECTOR) is not None:
        if _menu_level(document, element) != "secondary":
            return False

    if document.tag_name(element) not in LABEL_TAGS:
        return False

    full_text = document.element_text(element).strip()
    if len(full_text) > max_container_chars:
        return False
    if not full_text:
        return False

    text_ratio = len(text) / len(full_text)
    if text_ratio < MIN_TEXT_RATIO and len(full_text) > LARGE_CONTAINER_CHARS:
        return False

    if document.closest(element, UI_AREA_SELECTOR) is not None:
        return True

    if document.closest(element, CELL_SELECTOR) is not None:
        return True

    child_count = document.child_count(element)
    if child_count <= SMALL_ELEMENT_CHILDREN and text_ratio > DOMINANT_TEXT_RATIO:
        return True

    if document.closest(element, INTERACTIVE_SELECTOR) is not None:
        return True

    return len(text) <= SHORT_TEXT_CHARS and child_count <= SMALL_ELEMENT_CHILDREN
