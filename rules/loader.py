"""Loading banner, card and tag rule collections from JSON exports."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Mapping

from utils import load_json_document

from .models import RuleSet, coerce_rule

logger = logging.getLogger(__name__)


def rules_from_data(data: Any, *, label: str = "rules") -> List[RuleSet]:
    """Return the rule records contained in a decoded JSON document.

    Accepts a plain list or an object with a ``rules`` list. Entries that are
    not objects are skipped.
    """
    if isinstance(data, Mapping):
        data = data.get("rules")
    if not isinstance(data, list):
        if data is not None:
            logger.warning("Ignoring %s document of type %s", label, type(data).__name__)
        return []

    rules: List[RuleSet] = []
    for index, item in enumerate(data):
        if not isinstance(item, Mapping):
            logger.warning("Skipping %s entry %d: not an object", label, index)
            continue
        rules.append(coerce_rule(dict(item)))
    return rules


def load_rules(path: str | Path, *, label: str = "rules") -> List[RuleSet]:
    """Read a rule collection; missing or unreadable files yield ``[]``."""
    data = load_json_document(path, label=label)
    rules = rules_from_data(data, label=label)
    logger.info("%d %s loaded from %s", len(rules), label, path)
    return rules
