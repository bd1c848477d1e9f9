"""Blank-line placement for pretty-printed JSON.

Pretty-printing a parsed document discards every blank line of the source.
Two passes restore the ones a policy cares about:

- group pass: one blank line before the first key of every top-level group
  except the first, unless `before_fields` maps that key to `none`;
- in-field pass: inside object fields listed in `in_fields`, a `keep` rule
  mirrors the blank lines the original source had before each direct child,
  while `none` strips them.

Both passes read the text line by line and track object depth by counting
braces outside of string literals. They assume one key per line, which is
what `json.dumps(..., indent=2)` produces.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Collection, Dict, List, Mapping, Optional, Sequence, Set

from ..policy import LineBreakRule, LineBreakSpec, OrderSpec

_KEY_PATTERN = re.compile(r'^"((?:[^"\\]|\\.)*)"\s*:')


@dataclass
class LineBreakSettings:
    """Effective line-break behaviour after applying configuration overrides."""

    between_groups: bool = False
    before_fields: Dict[str, LineBreakRule] = field(default_factory=dict)
    in_fields: Dict[str, LineBreakRule] = field(default_factory=dict)


def resolve_settings(
    spec: Optional[LineBreakSpec],
    *,
    between_groups: Optional[bool] = None,
    before_fields: Optional[Mapping[str, str]] = None,
    in_fields: Optional[Mapping[str, str]] = None,
) -> LineBreakSettings:
    """Overlay configuration overrides on the policy's `linebreak` section."""
    settings = LineBreakSettings()
    if spec is not None:
        settings.between_groups = bool(spec.between_groups)
        settings.before_fields = dict(spec.before_fields)
        settings.in_fields = dict(spec.in_fields)
    if between_groups is not None:
        settings.between_groups = between_groups
    for key, value in (before_fields or {}).items():
        settings.before_fields[key] = LineBreakRule.from_override(value)
    for key, value in (in_fields or {}).items():
        settings.in_fields[key] = LineBreakRule.from_override(value)
    return settings


def leading_key(line: str) -> Optional[str]:
    """Return the decoded object key that starts `line`, if any."""
    match = _KEY_PATTERN.match(line.strip())
    if match is None:
        return None
    raw = match.group(1)
    try:
        return json.loads(f'"{raw}"')
    except json.JSONDecodeError:
        return raw


def opens_object(line: str) -> bool:
    """True when `line` is a `"key": {` entry."""
    stripped = line.strip()
    match = _KEY_PATTERN.match(stripped)
    return match is not None and stripped[match.end():].lstrip().startswith("{")


def brace_delta(line: str) -> int:
    """Net `{`/`}` balance of a line, ignoring braces inside strings."""
    delta = 0
    in_string = False
    escaped = False
    for char in line:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            delta += 1
        elif char == "}":
            delta -= 1
    return delta


def group_leaders(groups: Sequence[Sequence[str]]) -> Set[str]:
    """First declared key of every non-empty group."""
    return {group[0] for group in groups if group}


def apply_group_linebreaks(
    pretty: str,
    groups: Sequence[Sequence[str]],
    *,
    between_groups: bool,
    before_fields: Mapping[str, LineBreakRule],
) -> str:
    """Insert or collapse blank lines before top-level group leaders."""
    if not between_groups or not groups:
        return pretty
    leaders = group_leaders(groups)
    lines, trailing = _split(pretty)
    out: List[str] = []
    seen_first = False
    depth = 0
    for line in lines:
        if depth == 1:
            key = leading_key(line)
            if key is not None and key in leaders:
                if not seen_first:
                    seen_first = True
                elif before_fields.get(key) is LineBreakRule.NONE:
                    _drop_blank_lines(out)
                else:
                    _ensure_single_blank_line(out)
        out.append(line)
        depth += brace_delta(line)
    return _join(out, trailing)


def blank_line_children(
    original: str, in_fields: Mapping[str, LineBreakRule]
) -> Dict[str, Set[str]]:
    """Map each `keep` field to the child keys preceded by a blank line in `original`."""
    targets = {name for name, rule in in_fields.items() if rule is LineBreakRule.KEEP}
    found: Dict[str, Set[str]] = {}
    if not targets:
        return found
    active: Optional[str] = None
    depth = 0
    previous_blank = False
    for line in original.splitlines():
        if active is None and opens_object(line):
            key = leading_key(line)
            if key in targets:
                active = key
                depth = 0
        if active is not None:
            if depth == 1 and previous_blank:
                child = leading_key(line)
                if child is not None:
                    found.setdefault(active, set()).add(child)
            depth += brace_delta(line)
            if depth <= 0:
                active = None
        previous_blank = not line.strip()
    return found


def apply_in_field_linebreaks(
    pretty: str,
    in_fields: Mapping[str, LineBreakRule],
    keep_map: Mapping[str, Collection[str]],
) -> str:
    """Mirror `keep_map` blank lines inside `keep` fields and strip them in `none` fields."""
    if not in_fields:
        return pretty
    lines, trailing = _split(pretty)
    out: List[str] = []
    active: Optional[str] = None
    seen_child = False
    depth = 0
    for line in lines:
        if active is None and opens_object(line):
            key = leading_key(line)
            if key is not None and key in in_fields:
                active = key
                seen_child = False
                depth = 0
        if active is not None:
            child = leading_key(line) if depth == 1 else None
            if child is not None:
                if not seen_child:
                    seen_child = True
                    _drop_blank_lines(out)
                elif in_fields[active] is LineBreakRule.KEEP and child in keep_map.get(
                    active, ()
                ):
                    _ensure_single_blank_line(out)
                else:
                    _drop_blank_lines(out)
            depth += brace_delta(line)
        out.append(line)
        if active is not None and depth <= 0:
            active = None
    return _join(out, trailing)


def apply_linebreaks(
    pretty: str,
    original: str,
    order: OrderSpec,
    settings: LineBreakSettings,
) -> str:
    """Run the group pass and then the in-field pass."""
    text = apply_group_linebreaks(
        pretty,
        order.top,
        between_groups=settings.between_groups,
        before_fields=settings.before_fields,
    )
    keep_map = blank_line_children(original, settings.in_fields)
    return apply_in_field_linebreaks(text, settings.in_fields, keep_map)


def _split(text: str) -> tuple[List[str], bool]:
    return text.splitlines(), text.endswith("\n")


def _join(lines: List[str], trailing: bool) -> str:
    text = "\n".join(lines)
    return text + "\n" if trailing else text


def _ensure_single_blank_line(out: List[str]) -> None:
    if not out:
        return
    if out[-1].strip():
        out.append("")
        return
    while len(out) >= 2 and not out[-2].strip():
        out.pop()


def _drop_blank_lines(out: List[str]) -> None:
    while out and not out[-1].strip():
        out.pop()


__all__ = [
    "LineBreakSettings",
    "apply_group_linebreaks",
    "apply_in_field_linebreaks",
    "apply_linebreaks",
    "blank_line_children",
    "brace_delta",
    "group_leaders",
    "leading_key",
    "opens_object",
    "resolve_settings",
]
