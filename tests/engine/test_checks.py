"""Tests for policy check evaluation."""

from __future__ import annotations

from typing import Any, Dict, List

from convkit.engine.checks import CheckRunner, kind_of, matches_kind, render_message, run_checks
from convkit.policy import OrderSpec, Policy


def _checks(*raw: Dict[str, Any]) -> List[Any]:
    return Policy.model_validate({"checks": list(raw)}).checks


def _run(document: Any, *raw: Dict[str, Any]):
    return run_checks(_checks(*raw), document, file="package.json", rule_id="pkg")


def test_required_reports_each_missing_field() -> None:
    issues = _run(
        {"name": "x"},
        {"kind": "required", "fields": ["name", "version", "repository.url"]},
    )

    assert [issue.path for issue in issues] == ["$.version", "$.repository.url"]
    assert issues[0].message == "Field 'version' is required"
    assert issues[0].severity == "error"
    assert issues[0].file == "package.json"
    assert issues[0].rule == "pkg"


def test_type_mismatch_message_and_level() -> None:
    issues = _run(
        {"name": 1, "version": 2},
        {
            "kind": "type",
            "fields": {"name": "string", "version": "number"},
            "level": "warn",
        },
    )

    assert len(issues) == 1
    assert issues[0].message == "Type mismatch at $.name: expected string, got integer"
    assert issues[0].severity == "warning"


def test_type_skips_missing_fields() -> None:
    assert _run({}, {"kind": "type", "fields": {"name": "string"}}) == []


def test_custom_message_placeholders() -> None:
    issues = _run(
        {"name": 1},
        {
            "kind": "type",
            "fields": {"name": "string"},
            "message": "{field} needs {expected}, saw {actual}",
            "severity": "info",
        },
    )

    assert issues[0].message == "name needs string, saw integer"
    assert issues[0].severity == "info"


def test_const_compares_strictly() -> None:
    issues = _run({"private": 1}, {"kind": "const", "field": "private", "value": True})

    assert len(issues) == 1
    assert issues[0].message == "Field 'private' must equal true"
    assert _run({"private": True}, {"kind": "const", "field": "private", "value": True}) == []
    assert _run({}, {"kind": "const", "field": "private", "value": True}) == []


def test_pattern_uses_search_semantics() -> None:
    check = {"kind": "pattern", "field": "name", "regex": "^@scope/"}

    assert _run({"name": "@scope/pkg"}, check) == []
    issues = _run({"name": "other"}, check)
    assert issues[0].message == "Field 'name' does not match pattern ^@scope/"
    assert issues[0].path == "$.name"


def test_invalid_pattern_is_reported() -> None:
    issues = _run({"name": "x"}, {"kind": "pattern", "field": "name", "regex": "("})

    assert len(issues) == 1
    assert issues[0].message.startswith("Invalid pattern for field 'name'")


def test_enum_lists_allowed_values() -> None:
    check = {"kind": "enum", "field": "license", "values": ["MIT", "Apache-2.0"]}

    assert _run({"license": "MIT"}, check) == []
    issues = _run({"license": "GPL"}, check)
    assert issues[0].message == 'Field \'license\' must be one of ["MIT", "Apache-2.0"]'


def test_length_checks() -> None:
    min_check = {"kind": "minLength", "field": "description", "min": 10}
    max_check = {"kind": "maxLength", "field": "keywords", "max": 2}

    short = _run({"description": "short"}, min_check)
    long = _run({"keywords": ["a", "b", "c"]}, max_check)

    assert short[0].message == "Field 'description' is shorter than 10"
    assert long[0].message == "Field 'keywords' is longer than 2"
    assert _run({"description": "long enough text"}, min_check) == []
    assert _run({}, min_check) == []


def test_order_issue_uses_policy_metadata() -> None:
    runner = CheckRunner("package.json", "pkg")
    order = OrderSpec(top=[["name"], ["version"]])

    issue = runner.order_issue({"version": "1", "name": "n"}, order)

    assert issue is not None
    assert issue.path == "$"
    assert issue.severity == "error"
    assert issue.message == "Object key order does not match policy"

    custom = OrderSpec.model_validate(
        {"top": [["name"]], "message": "Sort keys", "level": "warning"}
    )
    issue = runner.order_issue({"b": 1, "a": 2}, custom)
    assert issue is not None
    assert (issue.message, issue.severity) == ("Sort keys", "warning")
    assert runner.order_issue({"name": "n", "version": "1"}, order) is None


def test_kind_helpers() -> None:
    assert kind_of(None) == "null"
    assert kind_of(True) == "boolean"
    assert kind_of(1.5) == "number"
    assert matches_kind(3, "number") is True
    assert matches_kind(True, "integer") is False
    assert matches_kind([], "Array") is True


def test_render_message_leaves_unknown_braces() -> None:
    assert render_message("{field} {other}", "", field="name") == "name {other}"
    assert render_message(None, "default {min}", min=3) == "default 3"
