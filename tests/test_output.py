"""Tests for human and JSON rendering."""

from __future__ import annotations

import io
import json

from convkit.models import FormatResult, Issue, LintResult, Summary, SyncAction
from convkit.output import (
    compose_format_json,
    compose_format_lines,
    compose_lint_json,
    compose_lint_lines,
    compose_sync_json,
    compose_sync_lines,
    print_lint,
    render_diff,
)


def _lint_result() -> LintResult:
    return LintResult(
        issues=[
            Issue(
                file="conventions/base/package.json",
                rule="pkg-sub",
                severity="error",
                path="$.repository.directory",
                message="Field 'repository.directory' is required",
            ),
            Issue(
                file="package.json",
                rule="pkg-root",
                severity="warning",
                path="$.name",
                message="Type mismatch at $.name: expected string, got integer",
            ),
        ],
        summary=Summary(errors=1, warnings=1, infos=0, files=2),
    )


def test_lint_lines_group_by_directory() -> None:
    lines = compose_lint_lines(_lint_result())

    assert lines == [
        "(root)",
        "  [warn] package.json (pkg-root) $.name: Type mismatch at $.name: expected string, got integer",
        "conventions/base",
        "  [error] package.json (pkg-sub) $.repository.directory: Field 'repository.directory' is required",
        "Summary: errors=1 warnings=1 infos=0 files=2",
    ]


def test_lint_json_shape() -> None:
    payload = compose_lint_json(_lint_result())

    assert payload["summary"] == {"errors": 1, "warnings": 1, "infos": 0, "files": 2}
    assert payload["issues"][1]["path"] == "$.name"


def test_print_lint_json_is_parseable() -> None:
    buffer = io.StringIO()

    print_lint(_lint_result(), "json", stream=buffer)

    assert json.loads(buffer.getvalue())["summary"]["errors"] == 1


def _format_results():
    return [
        FormatResult(
            file="a.json",
            changed=True,
            preview='{\n  "x": 1\n}\n',
            original='{"x":1}\n',
        ),
        FormatResult(file="b.json", changed=False, original='{"y": 2}\n'),
    ]


def test_format_json_preview_and_diff() -> None:
    payload = compose_format_json(_format_results(), write=False, diff=True)

    assert payload["summary"] == {"changed": 1, "total": 2, "wrote": 0}
    first = payload["results"][0]
    assert first["preview"].startswith("{")
    assert "+++ a.json (formatted)" in first["diff"]
    assert payload["results"][1]["diff"] is None


def test_format_json_after_write() -> None:
    results = [FormatResult(file="a.json", changed=True, wrote=True)]

    payload = compose_format_json(results, write=True, diff=False)

    assert payload["summary"]["wrote"] == 1
    assert payload["results"][0]["preview"] is None
    assert payload["results"][0]["diff"] is None


def test_format_lines() -> None:
    preview_lines = compose_format_lines(_format_results(), write=False, diff=False)
    diff_lines = compose_format_lines(_format_results(), write=False, diff=True)
    written = compose_format_lines(
        [FormatResult(file="a.json", changed=True, wrote=True)], write=True, diff=False
    )

    assert preview_lines == ["--- a.json", '{\n  "x": 1\n}', "no changes: b.json"]
    assert diff_lines[0].startswith("--- a.json (original)")
    assert written == ["formatted: a.json"]


def test_render_diff_requires_both_sides() -> None:
    assert render_diff("a.json", None, "x") is None
    assert render_diff("a.json", "x\n", "x\n") == ""


def test_sync_rendering() -> None:
    actions = [
        SyncAction("r1", "src/a", "dst/a", wrote=True, would_write=True),
        SyncAction("r2", "src/b", "dst/b", wrote=False, would_write=True, format="json"),
        SyncAction("r3", "src/c", "dst/c", wrote=False, would_write=False),
    ]

    lines = compose_sync_lines(actions)
    payload = compose_sync_json(actions)

    assert lines == [
        "synced: src/a -> dst/a (rule=r1)",
        "would sync: src/b -> dst/b (rule=r2)",
        "up to date: src/c -> dst/c (rule=r3)",
    ]
    assert payload["summary"] == {"wrote": 1, "would_write": 2, "total": 3}
    assert payload["results"][1]["format"] == "json"
