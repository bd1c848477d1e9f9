"""Tests for document I/O helpers."""

from __future__ import annotations

from pathlib import Path

from convkit.documents import (
    display_path,
    load_document,
    parse_json,
    pretty_print,
    resolve_targets,
    write_atomic,
)
from convkit.parallel import map_documents


def test_load_document_skips_invalid_json(tmp_path: Path) -> None:
    good = tmp_path / "good.json"
    good.write_text('{"a": 1}', encoding="utf-8")
    bad = tmp_path / "bad.json"
    bad.write_text("{nope", encoding="utf-8")

    assert load_document(good) == ('{"a": 1}', {"a": 1})
    assert load_document(bad) is None
    assert load_document(tmp_path / "missing.json") is None


def test_parse_json_rejects_deeply_nested_input() -> None:
    assert parse_json("[" * 100000 + "]" * 100000) == (False, None)
    assert parse_json("[[1]]") == (True, [[1]])


def test_pretty_print_keeps_unicode() -> None:
    assert pretty_print({"name": "café"}) == '{\n  "name": "café"\n}'


def test_write_atomic_replaces_content(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "file.json"

    assert write_atomic(target, "first\n") is True
    assert write_atomic(target, "second\n") is True
    assert target.read_text(encoding="utf-8") == "second\n"
    assert sorted(path.name for path in target.parent.iterdir()) == ["file.json"]


def test_write_atomic_reports_unencodable_text(tmp_path: Path) -> None:
    target = tmp_path / "file.json"
    target.write_text("old\n", encoding="utf-8")

    assert write_atomic(target, '{"name": "\ud800"}\n') is False
    assert target.read_text(encoding="utf-8") == "old\n"
    assert [path.name for path in tmp_path.iterdir()] == ["file.json"]


def test_resolve_targets_sorts_and_deduplicates(repo_builder) -> None:
    repo_builder.write(
        {
            "packages/b/package.json": "{}",
            "packages/a/package.json": "{}",
            "packages/a/notes.txt": "x",
        }
    )
    (repo_builder.path() / "packages" / "dir.json").mkdir()
    root = repo_builder.path()

    targets = resolve_targets(
        root, ["packages/*/package.json", "packages/**/*.json", "packages/dir.json"]
    )

    assert [display_path(path, root) for path in targets] == [
        "packages/a/package.json",
        "packages/b/package.json",
    ]


def test_map_documents_preserves_input_order() -> None:
    assert map_documents(lambda value: value * 2, [3, 1, 2], max_workers=4) == [6, 2, 4]
    assert map_documents(lambda value: value, []) == []
