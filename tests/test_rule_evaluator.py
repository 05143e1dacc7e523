import logging

import pytest

from rules import evaluator as ev


def rule(**kwargs):
    data = {"id": kwargs.pop("id", "r"), "conditions": kwargs.pop("conditions", [])}
    data.update(kwargs)
    return data


TRUE_COND = {"property": "stage", "operator": "equals", "value": "open"}
FALSE_COND = {"property": "stage", "operator": "equals", "value": "closed"}
PROPS = {"stage": "open", "amount": "5000"}


@pytest.mark.parametrize(
    "logic, conditions, expected",
    [
        ("AND", [TRUE_COND, TRUE_COND], True),
        ("AND", [TRUE_COND, FALSE_COND], False),
        ("AND", [FALSE_COND, FALSE_COND], False),
        ("OR", [TRUE_COND, FALSE_COND], True),
        ("OR", [FALSE_COND, TRUE_COND], True),
        ("OR", [FALSE_COND, FALSE_COND], False),
        ("or", [FALSE_COND, TRUE_COND], True),
    ],
)
def test_and_or_truth_table(logic, conditions, expected):
    assert ev.evaluate_rule(rule(logic=logic, conditions=conditions), PROPS) is expected


def test_missing_logic_defaults_to_and():
    assert ev.evaluate_rule(rule(conditions=[TRUE_COND, FALSE_COND]), PROPS) is False
    assert ev.evaluate_rule(rule(conditions=[TRUE_COND]), PROPS) is True


def test_unknown_logic_is_false(caplog):
    with caplog.at_level(logging.WARNING, logger="rules.evaluator"):
        assert ev.evaluate_rule(rule(logic="XOR", conditions=[TRUE_COND]), PROPS) is False
    assert "Unknown rule logic" in caplog.text


def test_display_on_all_short_circuits(monkeypatch):
    calls = []
    monkeypatch.setattr(ev, "evaluate_condition", lambda c, p: calls.append(c) or False)
    assert ev.evaluate_rule(rule(displayOnAll=True, conditions=[FALSE_COND]), PROPS) is True
    assert calls == []


def test_rule_without_conditions_is_shown():
    assert ev.evaluate_rule({"id": "empty"}, PROPS) is True
    assert ev.evaluate_rule(rule(conditions=[]), PROPS) is True


def test_evaluate_rules_sorts_by_priority_descending():
    rules = [
        rule(id="low", priority=10),
        rule(id="high", priority=50),
        rule(id="mid", priority=30),
    ]
    result = ev.evaluate_rules(rules, PROPS)
    assert [r["priority"] for r in result] == [50, 30, 10]


def test_evaluate_rules_ties_keep_collection_order():
    rules = [rule(id="a", priority=5), rule(id="b", priority=5), rule(id="c", priority=5)]
    assert [r["id"] for r in ev.evaluate_rules(rules, PROPS)] == ["a", "b", "c"]


def test_evaluate_rules_uses_default_priority():
    rules = [rule(id="none"), rule(id="sixty", priority=60), rule(id="forty", priority="40")]
    result = ev.evaluate_rules(rules, PROPS, default_priority=50)
    assert [r["id"] for r in result] == ["sixty", "none", "forty"]


def test_evaluate_rules_non_numeric_priority_falls_back():
    rules = [rule(id="bad", priority="urgent"), rule(id="one", priority=1)]
    assert [r["id"] for r in ev.evaluate_rules(rules, PROPS)] == ["one", "bad"]


def test_evaluate_rules_filters_non_matching_and_disabled():
    rules = [
        rule(id="match", conditions=[TRUE_COND]),
        rule(id="nomatch", conditions=[FALSE_COND]),
        rule(id="disabled", enabled=False),
        "garbage",
    ]
    assert [r["id"] for r in ev.evaluate_rules(rules, PROPS)] == ["match"]


def test_object_type_gate_matches_singular_and_plural():
    banner = rule(id="companies", objectTypes=["companies"], displayOnAll=True)
    assert ev.evaluate_rules([banner], PROPS, {"objectType": "company"}) == [banner]
    assert ev.evaluate_rules([banner], PROPS, {"objectType": "companies"}) == [banner]
    assert ev.evaluate_rules([banner], PROPS, {"objectType": "deal"}) == []


def test_object_type_gate_with_display_on_all():
    """displayOnAll does not bypass the object-type gate."""
    banner = rule(id="deals-only", objectTypes=["deal"], displayOnAll=True)
    assert ev.evaluate_rules([banner], {}, {"objectType": "contact"}) == []
    assert ev.evaluate_rules([banner], {}, {"objectType": "deals"}) == [banner]


def test_object_type_gate_without_context_object_type():
    banner = rule(id="typed", objectTypes=["deal"])
    untyped = rule(id="untyped")
    assert ev.evaluate_rules([banner, untyped], PROPS) == [untyped]


def test_singular_object_type_gate_for_cards():
    card = rule(id="card", objectType="tickets")
    assert ev.evaluate_rules([card], PROPS, {"objectType": "ticket"}) == [card]
    assert ev.evaluate_rules([card], PROPS, {"objectType": "deal"}) == []


def test_pipeline_and_stage_gates():
    scoped = rule(id="scoped", pipelines=["sales"], stages=["appointmentscheduled"])
    ctx = {"objectType": "deal", "pipeline": "sales", "stage": "appointmentscheduled"}
    assert ev.evaluate_rules([scoped], PROPS, ctx) == [scoped]
    assert ev.evaluate_rules([scoped], PROPS, {**ctx, "pipeline": "renewals"}) == []
    assert ev.evaluate_rules([scoped], PROPS, {**ctx, "stage": "closedwon"}) == []
    assert ev.evaluate_rules([scoped], PROPS, {"objectType": "deal"}) == []


def test_evaluate_rules_does_not_mutate_input():
    rules = [rule(id="b", priority=1), rule(id="a", priority=2)]
    snapshot = [dict(r) for r in rules]
    ev.evaluate_rules(rules, PROPS)
    assert rules == snapshot


def test_select_index_tags_only_show_on_index_and_capped():
    rules = [
        rule(id="hidden", priority=100),
        rule(id="t1", showOnIndex=True, priority=1),
        rule(id="t2", showOnIndex=True, priority=2),
        rule(id="t3", showOnIndex=True, priority=3),
        rule(id="t4", showOnIndex=True, priority=4),
        rule(id="t5", showOnIndex=True, conditions=[FALSE_COND], priority=5),
    ]
    tags = ev.select_index_tags(rules, PROPS, {"objectType": "deal"})
    assert [t["id"] for t in tags] == ["t4", "t3", "t2"]
    assert len(ev.select_index_tags(rules, PROPS, max_tags=1)) == 1


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Companies", "company"),
        ("contacts", "contact"),
        ("deal", "deal"),
        ("TICKETS", "ticket"),
        ("", None),
        (None, None),
    ],
)
def test_normalize_object_type(value, expected):
    assert ev.normalize_object_type(value) == expected


STATUS_OPEN = {"property": "status", "operator": "equals", "value": "open"}
AMOUNT_OVER_1000 = {"property": "amount", "operator": "greater_than", "value": 1000}


@pytest.mark.parametrize(
    "logic, amount, expected",
    [
        ("AND", "1500", True),
        ("AND", "500", False),
        ("OR", "1500", True),
        ("OR", "500", True),
    ],
)
def test_status_and_amount_rule(logic, amount, expected):
    banner = rule(logic=logic, conditions=[STATUS_OPEN, AMOUNT_OVER_1000])
    assert ev.evaluate_rule(banner, {"status": "open", "amount": amount}) is expected


def test_status_and_amount_rule_with_closed_status():
    properties = {"status": "closed", "amount": "500"}
    conditions = [STATUS_OPEN, AMOUNT_OVER_1000]
    assert ev.evaluate_rule(rule(logic="AND", conditions=conditions), properties) is False
    assert ev.evaluate_rule(rule(logic="OR", conditions=conditions), properties) is False
