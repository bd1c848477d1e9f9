"""Human and JSON rendering for lint, format, and sync results."""

from __future__ import annotations

import difflib
import json
import sys
from dataclasses import asdict
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional, Sequence, TextIO

from .models import SEVERITY_ERROR, SEVERITY_WARNING, FormatResult, LintResult, SyncAction

ROOT_GROUP = "(root)"

_SEVERITY_LABELS = {SEVERITY_ERROR: "error", SEVERITY_WARNING: "warn"}


def render_diff(file: str, original: Optional[str], updated: Optional[str]) -> Optional[str]:
    """Unified diff between the on-disk text and the formatted preview."""
    if original is None or updated is None:
        return None
    diff = difflib.unified_diff(
        original.splitlines(keepends=True),
        updated.splitlines(keepends=True),
        fromfile=f"{file} (original)",
        tofile=f"{file} (formatted)",
    )
    return "".join(diff)


def compose_lint_json(result: LintResult) -> Dict[str, Any]:
    return {
        "issues": [asdict(issue) for issue in result.issues],
        "summary": asdict(result.summary),
    }


def compose_lint_lines(result: LintResult) -> List[str]:
    """Issues grouped under their directory, files shown by basename."""
    groups: Dict[str, List[Any]] = {}
    for issue in result.issues:
        parent = str(PurePosixPath(issue.file.replace("\\", "/")).parent)
        groups.setdefault(parent if parent not in {"", "."} else ROOT_GROUP, []).append(issue)

    lines: List[str] = []
    for directory in sorted(groups):
        lines.append(directory)
        for issue in groups[directory]:
            label = _SEVERITY_LABELS.get(issue.severity, "info")
            name = PurePosixPath(issue.file.replace("\\", "/")).name or issue.file
            lines.append(f"  [{label}] {name} ({issue.rule}) {issue.path}: {issue.message}")
    summary = result.summary
    lines.append(
        f"Summary: errors={summary.errors} warnings={summary.warnings} "
        f"infos={summary.infos} files={summary.files}"
    )
    return lines


def compose_format_json(
    results: Sequence[FormatResult], *, write: bool, diff: bool
) -> Dict[str, Any]:
    items = []
    for result in results:
        items.append(
            {
                "file": result.file,
                "changed": result.changed,
                "wrote": result.wrote,
                "preview": result.preview if not write else None,
                "diff": (
                    render_diff(result.file, result.original, result.preview)
                    if diff and not write and result.changed
                    else None
                ),
            }
        )
    return {
        "results": items,
        "summary": {
            "changed": sum(1 for result in results if result.changed),
            "total": len(results),
            "wrote": sum(1 for result in results if result.wrote),
        },
    }


def compose_format_lines(
    results: Sequence[FormatResult], *, write: bool, diff: bool
) -> List[str]:
    lines: List[str] = []
    for result in results:
        if not result.changed:
            lines.append(f"no changes: {result.file}")
            continue
        if write:
            status = "formatted" if result.wrote else "failed to write"
            lines.append(f"{status}: {result.file}")
            continue
        body = render_diff(result.file, result.original, result.preview) if diff else None
        if body is None:
            body = result.preview or ""
            lines.append(f"--- {result.file}")
        lines.append(body.rstrip("\n"))
    return lines


def compose_sync_json(actions: Sequence[SyncAction]) -> Dict[str, Any]:
    return {
        "results": [
            {
                "rule": action.rule_id,
                "source": action.source,
                "target": action.target,
                "wrote": action.wrote,
                "would_write": action.would_write,
                "format": action.format,
            }
            for action in actions
        ],
        "summary": {
            "wrote": sum(1 for action in actions if action.wrote),
            "would_write": sum(1 for action in actions if action.would_write),
            "total": len(actions),
        },
    }


def compose_sync_lines(actions: Sequence[SyncAction]) -> List[str]:
    lines: List[str] = []
    for action in actions:
        if action.wrote:
            state = "synced"
        elif action.would_write:
            state = "would sync"
        else:
            state = "up to date"
        lines.append(f"{state}: {action.source} -> {action.target} (rule={action.rule_id})")
    return lines


def print_lint(result: LintResult, output: str, stream: TextIO | None = None) -> None:
    if output == "json":
        _emit_json(compose_lint_json(result), stream)
    else:
        _emit_lines(compose_lint_lines(result), stream)


def print_format(
    results: Sequence[FormatResult],
    output: str,
    *,
    write: bool,
    diff: bool,
    stream: TextIO | None = None,
) -> None:
    if output == "json":
        _emit_json(compose_format_json(results, write=write, diff=diff), stream)
    else:
        _emit_lines(compose_format_lines(results, write=write, diff=diff), stream)


def print_sync(
    actions: Sequence[SyncAction], output: str, stream: TextIO | None = None
) -> None:
    if output == "json":
        _emit_json(compose_sync_json(actions), stream)
    else:
        _emit_lines(compose_sync_lines(actions), stream)


def _emit_json(payload: Dict[str, Any], stream: TextIO | None) -> None:
    target = stream or sys.stdout
    target.write(json.dumps(payload, indent=2, ensure_ascii=False) + "\n")


def _emit_lines(lines: Sequence[str], stream: TextIO | None) -> None:
    target = stream or sys.stdout
    for line in lines:
        target.write(line + "\n")


__all__ = [
    "compose_format_json",
    "compose_format_lines",
    "compose_lint_json",
    "compose_lint_lines",
    "compose_sync_json",
    "compose_sync_lines",
    "print_format",
    "print_lint",
    "print_sync",
    "render_diff",
]
