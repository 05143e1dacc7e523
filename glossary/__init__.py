"""Glossary term annotation for rendered CRM pages."""

# Package exports should be side-effect free.

from . import (
    models,
    normalizer,
    term_index,
    storage,
    document,
    regions,
    scanner,
    coordinator,
)

__all__ = [
    "models",
    "normalizer",
    "term_index",
    "storage",
    "document",
    "regions",
    "scanner",
    "coordinator",
]
