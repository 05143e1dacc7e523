"""Rule evaluation for banners, reference cards and list-page tags.

All three content kinds carry the same rule shape, so the call sites differ
only in which collection and which property mapping they pass. The public
entry points are pure functions over their inputs.
"""

from __future__ import annotations

import logging
import math
from typing import Any, List, Mapping, Optional, Sequence

from glossary.normalizer import singularize
from utils import coerce_bool, coerce_str_list

from .conditions import evaluate_condition, parse_number
from .models import LOGIC_AND, LOGIC_OR, RuleContext, RuleSet, coerce_rule

logger = logging.getLogger(__name__)

OBJECT_TYPE_ALIASES = {
    "contacts": "contact",
    "companies": "company",
    "deals": "deal",
    "tickets": "ticket",
}


def normalize_object_type(value: Any) -> Optional[str]:
    """Return the singular, lower-case form of an object type name."""
    if value is None:
        return None
    text = str(value).strip().lower()
    if not text:
        return None
    return OBJECT_TYPE_ALIASES.get(text) or singularize(text)


def rule_priority(rule: RuleSet | Mapping[str, Any], default: float = 0.0) -> float:
    value = coerce_rule(rule).get("priority")
    if value is None or value == "":
        return default
    number = parse_number(value)
    return default if math.isnan(number) else number


def evaluate_rule(rule: RuleSet | Mapping[str, Any], properties: Mapping[str, Any]) -> bool:
    """Return whether the rule's conditions hold for ``properties``.

    ``displayOnAll`` wins without looking at the conditions. A rule without
    conditions counts as "no filter configured" and is visible.
    """
    data = coerce_rule(rule)
    if coerce_bool(data.get("displayOnAll"), default=False):
        return True

    conditions = data.get("conditions") or []
    if not isinstance(conditions, (list, tuple)) or not conditions:
        return True

    logic = str(data.get("logic") or LOGIC_AND).strip().upper()
    if logic == LOGIC_AND:
        return all(
            isinstance(cond, Mapping) and evaluate_condition(cond, properties)
            for cond in conditions
        )
    if logic == LOGIC_OR:
        return any(
            isinstance(cond, Mapping) and evaluate_condition(cond, properties)
            for cond in conditions
        )

    logger.warning("Unknown rule logic %r in rule %s", logic, data.get("id"))
    return False


def _passes_object_type_gate(data: RuleSet, object_type: Optional[str]) -> bool:
    allowed = [normalize_object_type(t) for t in coerce_str_list(data.get("objectTypes"))]
    allowed = [t for t in allowed if t]
    if allowed and object_type not in allowed:
        return False

    single = normalize_object_type(data.get("objectType"))
    if single and single != object_type:
        return False
    return True


def _passes_list_gate(values: Any, current: Any) -> bool:
    allowed = coerce_str_list(values)
    if not allowed:
        return True
    if current is None or str(current).strip() == "":
        return False
    return str(current).strip() in allowed


def is_rule_applicable(
    rule: RuleSet | Mapping[str, Any],
    context: RuleContext | Mapping[str, Any],
) -> bool:
    """Gates evaluated before the conditions: enabled, object type, pipeline, stage."""
    data = coerce_rule(rule)
    rule_id = data.get("id")

    if not coerce_bool(data.get("enabled"), default=True):
        logger.debug("Rule %s skipped - disabled", rule_id)
        return False

    object_type = normalize_object_type(context.get("objectType"))
    if not _passes_object_type_gate(data, object_type):
        logger.debug("Rule %s skipped - objectType mismatch (%s)", rule_id, object_type)
        return False

    if not _passes_list_gate(data.get("pipelines"), context.get("pipeline")):
        logger.debug("Rule %s skipped - pipeline mismatch", rule_id)
        return False

    if not _passes_list_gate(data.get("stages"), context.get("stage")):
        logger.debug("Rule %s skipped - stage mismatch", rule_id)
        return False

    return True


def evaluate_rules(
    rules: Sequence[RuleSet | Mapping[str, Any]],
    properties: Mapping[str, Any],
    context: Optional[RuleContext | Mapping[str, Any]] = None,
    *,
    default_priority: float = 0.0,
) -> List[RuleSet]:
    """Return the matching rules, highest priority first.

    Ties keep their collection order.
    """
    ctx: Mapping[str, Any] = context or {}
    matching: List[RuleSet] = []
    for rule in rules or []:
        if not isinstance(rule, Mapping):
            logger.warning("Skipping malformed rule record: %r", rule)
            continue
        if not is_rule_applicable(rule, ctx):
            continue
        if evaluate_rule(rule, properties):
            matching.append(coerce_rule(rule))

    logger.debug(
        "%d of %d rules match for objectType %s",
        len(matching),
        len(rules or []),
        ctx.get("objectType"),
    )
    return sorted(matching, key=lambda r: rule_priority(r, default_priority), reverse=True)


def select_index_tags(
    rules: Sequence[RuleSet | Mapping[str, Any]],
    properties: Mapping[str, Any],
    context: Optional[RuleContext | Mapping[str, Any]] = None,
    *,
    max_tags: int = 3,
    default_priority: float = 0.0,
) -> List[RuleSet]:
    """Rules to render as tags on a list-page row (``showOnIndex`` only)."""
    eligible = [
        rule
        for rule in rules or []
        if isinstance(rule, Mapping) and coerce_bool(rule.get("showOnIndex"), default=False)
    ]
    matching = evaluate_rules(eligible, properties, context, default_priority=default_priority)
    return matching[:max_tags]
