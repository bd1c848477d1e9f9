"""Evaluation of policy checks against parsed documents."""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from ..models import Issue, normalize_severity
from ..policy import (
    Check,
    ConstCheck,
    EnumCheck,
    MaxLengthCheck,
    MinLengthCheck,
    OrderSpec,
    PatternCheck,
    RequiredCheck,
    TypeCheck,
)
from .normalizer import expected_key_order
from .paths import json_equal, json_path, lookup

_PLACEHOLDER = re.compile(r"\{(field|path|expected|actual|value|min|max)\}")

DEFAULT_ORDER_MESSAGE = "Object key order does not match policy"


def kind_of(value: Any) -> str:
    """JSON kind name of a parsed value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def matches_kind(value: Any, expected: str) -> bool:
    actual = kind_of(value)
    wanted = expected.strip().lower()
    if wanted == "number":
        return actual in {"integer", "number"}
    return actual == wanted


def render_message(template: Optional[str], default: str, **values: Any) -> str:
    """Fill `{field}`-style placeholders; unknown braces are left verbatim."""
    text = template if template else default

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in values:
            return match.group(0)
        value = values[name]
        return value if isinstance(value, str) else _literal(value)

    return _PLACEHOLDER.sub(_substitute, text)


def _literal(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


class CheckRunner:
    """Evaluates a policy's checks for one document."""

    def __init__(self, file: str, rule_id: str) -> None:
        self.file = file
        self.rule_id = rule_id
        self._handlers: Dict[type, Callable[[Any, Any], Iterable[Issue]]] = {
            RequiredCheck: self._required,
            TypeCheck: self._type,
            ConstCheck: self._const,
            PatternCheck: self._pattern,
            EnumCheck: self._enum,
            MinLengthCheck: self._min_length,
            MaxLengthCheck: self._max_length,
        }

    def run(self, checks: Sequence[Check], document: Any) -> List[Issue]:
        issues: List[Issue] = []
        for check in checks:
            handler = self._handlers.get(type(check))
            if handler is None:
                continue
            issues.extend(handler(check, document))
        return issues

    def order_issue(self, document: Any, order: OrderSpec) -> Optional[Issue]:
        """Issue when the document's top-level keys differ from the normalized order."""
        if not isinstance(document, dict):
            return None
        if expected_key_order(document, order) == list(document):
            return None
        return Issue(
            file=self.file,
            rule=self.rule_id,
            severity=normalize_severity(order.level),
            path="$",
            message=order.message or DEFAULT_ORDER_MESSAGE,
        )

    def _issue(self, check: Check, field: str, message: str) -> Issue:
        return Issue(
            file=self.file,
            rule=self.rule_id,
            severity=normalize_severity(check.level),
            path=json_path(field),
            message=message,
        )

    def _required(self, check: RequiredCheck, document: Any) -> Iterable[Issue]:
        for field in check.fields:
            found, _ = lookup(document, field)
            if found:
                continue
            message = render_message(
                check.message,
                "Field '{field}' is required",
                field=field,
                path=json_path(field),
            )
            yield self._issue(check, field, message)

    def _type(self, check: TypeCheck, document: Any) -> Iterable[Issue]:
        for field, expected in check.fields.items():
            found, value = lookup(document, field)
            if not found or matches_kind(value, expected):
                continue
            path = json_path(field)
            message = render_message(
                check.message,
                "Type mismatch at {path}: expected {expected}, got {actual}",
                field=field,
                path=path,
                expected=expected,
                actual=kind_of(value),
            )
            yield self._issue(check, field, message)

    def _const(self, check: ConstCheck, document: Any) -> Iterable[Issue]:
        found, value = lookup(document, check.field)
        if not found or json_equal(value, check.value):
            return
        message = render_message(
            check.message,
            "Field '{field}' must equal {expected}",
            field=check.field,
            path=json_path(check.field),
            expected=_literal(check.value),
            actual=_literal(value),
            value=check.value,
        )
        yield self._issue(check, check.field, message)

    def _pattern(self, check: PatternCheck, document: Any) -> Iterable[Issue]:
        found, value = lookup(document, check.field)
        if not found or not isinstance(value, str):
            return
        try:
            pattern = re.compile(check.regex)
        except re.error as exc:
            yield self._issue(
                check,
                check.field,
                f"Invalid pattern for field '{check.field}': {exc}",
            )
            return
        if pattern.search(value):
            return
        message = render_message(
            check.message,
            "Field '{field}' does not match pattern {expected}",
            field=check.field,
            path=json_path(check.field),
            expected=check.regex,
            actual=value,
        )
        yield self._issue(check, check.field, message)

    def _enum(self, check: EnumCheck, document: Any) -> Iterable[Issue]:
        found, value = lookup(document, check.field)
        if not found or any(json_equal(value, allowed) for allowed in check.values):
            return
        message = render_message(
            check.message,
            "Field '{field}' must be one of {expected}",
            field=check.field,
            path=json_path(check.field),
            expected=_literal(check.values),
            actual=_literal(value),
        )
        yield self._issue(check, check.field, message)

    def _min_length(self, check: MinLengthCheck, document: Any) -> Iterable[Issue]:
        found, value = lookup(document, check.field)
        if not found or not isinstance(value, (str, list)) or len(value) >= check.min:
            return
        message = render_message(
            check.message,
            "Field '{field}' is shorter than {min}",
            field=check.field,
            path=json_path(check.field),
            min=check.min,
            actual=len(value),
        )
        yield self._issue(check, check.field, message)

    def _max_length(self, check: MaxLengthCheck, document: Any) -> Iterable[Issue]:
        found, value = lookup(document, check.field)
        if not found or not isinstance(value, (str, list)) or len(value) <= check.max:
            return
        message = render_message(
            check.message,
            "Field '{field}' is longer than {max}",
            field=check.field,
            path=json_path(check.field),
            max=check.max,
            actual=len(value),
        )
        yield self._issue(check, check.field, message)


def run_checks(
    checks: Sequence[Check], document: Any, *, file: str, rule_id: str
) -> List[Issue]:
    """Evaluate `checks` in declaration order."""
    return CheckRunner(file, rule_id).run(checks, document)


__all__ = [
    "CheckRunner",
    "DEFAULT_ORDER_MESSAGE",
    "kind_of",
    "matches_kind",
    "render_message",
    "run_checks",
]
