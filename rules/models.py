"""Typed shapes of the rule records delivered by storage.

Records arrive as plain JSON objects and are evaluated as mappings; the
TypedDicts document the keys the evaluators read.
"""

from typing import Any, List, Mapping, TypedDict, cast

LOGIC_AND = "AND"
LOGIC_OR = "OR"


class Condition(TypedDict, total=False):
    property: str
    operator: str
    value: Any


class RuleSet(TypedDict, total=False):
    id: str
    name: str
    conditions: List[Condition]
    logic: str
    displayOnAll: bool
    objectTypes: List[str]
    objectType: str
    pipelines: List[str]
    stages: List[str]
    priority: float
    enabled: bool
    showOnIndex: bool


class RuleContext(TypedDict, total=False):
    objectType: str
    pipeline: str
    stage: str


def coerce_rule(rule_input: RuleSet | Mapping[str, Any]) -> RuleSet:
    """Cast rule records from JSON/dict to the TypedDict."""
    return cast(RuleSet, rule_input)


def coerce_condition(condition_input: Condition | Mapping[str, Any]) -> Condition:
    return cast(Condition, condition_input)
