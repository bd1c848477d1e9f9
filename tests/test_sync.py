"""Tests for template synchronization."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List

import pytest

from convkit.config import SyncClientConfig, SyncConfig
from convkit.engine.merge import MergeConfig, fingerprint
from convkit.hooks import PostHookRunner
from convkit.policy import IndexLoadError
from convkit.stores.fingerprints import FingerprintStore
from convkit.sync import run_sync

SCOPED_INDEX = """
[[sync]]
id = "r1"
source = "templates/a.txt"
target = "out/repo.txt"
when = "repo|app"

[[sync]]
id = "r2"
source = "templates/a.txt"
target = "out/lib.txt"
when = "lib"
"""

JSON_INDEX = """
[[sync]]
id = "pkg"
source = "templates/package.json"
target = "package.json"
format = "json"
"""


def test_sync_filters_rules_by_scope(repo_builder) -> None:
    repo_builder.write(
        {
            "conventions/index.toml": SCOPED_INDEX,
            "conventions/templates/a.txt": "hello\n",
        }
    )
    root = repo_builder.path()

    actions = run_sync(root, repo_builder.index_path(), "repo", write=True)

    assert [(action.rule_id, action.wrote) for action in actions] == [("r1", True)]
    assert (root / "out" / "repo.txt").read_text(encoding="utf-8") == "hello\n"
    assert not (root / "out" / "lib.txt").exists()


def test_sync_dry_run_reports_without_writing(repo_builder) -> None:
    repo_builder.write(
        {
            "conventions/index.toml": SCOPED_INDEX,
            "conventions/templates/a.txt": "hello\n",
        }
    )

    actions = run_sync(repo_builder.path(), repo_builder.index_path(), "lib")

    assert len(actions) == 1
    assert actions[0].rule_id == "r2"
    assert actions[0].would_write is True
    assert actions[0].wrote is False
    assert not (repo_builder.path() / "out").exists()


def test_sync_copies_directories_recursively(repo_builder) -> None:
    repo_builder.write(
        {
            "conventions/index.toml": """
            [[sync]]
            id = "workflows"
            source = "templates/workflows"
            target = ".github/workflows"
            """,
            "conventions/templates/workflows/ci.yml": "name: ci\n",
            "conventions/templates/workflows/nested/release.yml": "name: release\n",
        }
    )
    root = repo_builder.path()

    actions = run_sync(root, repo_builder.index_path(), "repo", write=True)

    assert actions[0].wrote is True
    assert (root / ".github/workflows/ci.yml").read_text(encoding="utf-8") == "name: ci\n"
    assert (root / ".github/workflows/nested/release.yml").is_file()


def test_missing_source_never_writes(repo_builder) -> None:
    repo_builder.write({"conventions/index.toml": SCOPED_INDEX})

    actions = run_sync(repo_builder.path(), repo_builder.index_path(), "repo", write=True)

    assert (actions[0].wrote, actions[0].would_write) == (False, False)


def test_ignored_rules_and_target_overrides(repo_builder) -> None:
    repo_builder.write(
        {
            "conventions/index.toml": SCOPED_INDEX,
            "conventions/templates/a.txt": "hello\n",
        }
    )
    root = repo_builder.path()
    config = SyncConfig(clients={"r1": SyncClientConfig(target="custom/a.txt")})

    moved = run_sync(root, repo_builder.index_path(), "repo", write=True, sync_config=config)
    ignored = run_sync(
        root, repo_builder.index_path(), "repo", sync_config=SyncConfig(ignore=["r1"])
    )

    assert moved[0].target == str(root / "custom/a.txt")
    assert (root / "custom/a.txt").is_file()
    assert not (root / "out/repo.txt").exists()
    assert ignored == []


def _merge_config() -> SyncConfig:
    return SyncConfig(
        clients={
            "pkg": SyncClientConfig(
                merge=MergeConfig(
                    keep_paths=["name", "version"],
                    no_sync_paths=["private"],
                    array_strategy={"files": "union"},
                )
            )
        }
    )


def _write_json_fixture(repo_builder) -> None:
    repo_builder.write({"conventions/index.toml": JSON_INDEX})
    repo_builder.write_json(
        "conventions/templates/package.json",
        {
            "name": "template",
            "version": "0.0.0",
            "private": True,
            "license": "MIT",
            "files": ["a", "b"],
        },
    )
    repo_builder.write_json(
        "package.json",
        {"name": "mine", "version": "1.2.3", "license": "ISC", "files": ["b", "c"]},
    )


def test_json_merge_writes_once(repo_builder) -> None:
    _write_json_fixture(repo_builder)
    root = repo_builder.path()

    first = run_sync(
        root, repo_builder.index_path(), "repo", write=True, sync_config=_merge_config()
    )
    second = run_sync(
        root, repo_builder.index_path(), "repo", write=True, sync_config=_merge_config()
    )

    merged_text = repo_builder.read("package.json")
    assert json.loads(merged_text) == {
        "name": "mine",
        "version": "1.2.3",
        "license": "MIT",
        "files": ["b", "c", "a"],
    }
    assert (first[0].wrote, first[0].would_write) == (True, True)
    assert (second[0].wrote, second[0].would_write) == (False, False)
    assert first[0].format == "json"
    marker_path = FingerprintStore(root).marker_path(root / "package.json")
    assert marker_path.read_text(encoding="utf-8") == fingerprint(merged_text)


def test_json_merge_with_unwritable_text_reports_failed_write(repo_builder) -> None:
    _write_json_fixture(repo_builder)
    repo_builder.write_raw(
        "conventions/templates/package.json", '{"description": "\\ud800"}\n'
    )
    before = repo_builder.read("package.json")

    actions = run_sync(
        repo_builder.path(),
        repo_builder.index_path(),
        "repo",
        write=True,
        sync_config=_merge_config(),
    )

    assert (actions[0].wrote, actions[0].would_write) == (False, True)
    assert repo_builder.read("package.json") == before


def test_json_merge_check_mode_does_not_write(repo_builder) -> None:
    _write_json_fixture(repo_builder)
    before = repo_builder.read("package.json")

    actions = run_sync(
        repo_builder.path(),
        repo_builder.index_path(),
        "repo",
        write=False,
        sync_config=_merge_config(),
    )

    assert (actions[0].wrote, actions[0].would_write) == (False, True)
    assert repo_builder.read("package.json") == before
    assert not (repo_builder.path() / ".convkit").exists()


def test_json_rule_without_merge_config_copies(repo_builder) -> None:
    _write_json_fixture(repo_builder)

    run_sync(repo_builder.path(), repo_builder.index_path(), "repo", write=True)

    assert repo_builder.read("package.json") == repo_builder.read(
        "conventions/templates/package.json"
    )


def test_unparseable_json_source_falls_back_to_copy(repo_builder) -> None:
    repo_builder.write(
        {
            "conventions/index.toml": JSON_INDEX,
            "conventions/templates/package.json": "// not json\n",
        }
    )

    actions = run_sync(
        repo_builder.path(),
        repo_builder.index_path(),
        "repo",
        write=True,
        sync_config=_merge_config(),
    )

    assert actions[0].wrote is True
    assert repo_builder.read("package.json") == "// not json\n"


def test_post_hooks_run_after_writes(repo_builder) -> None:
    _write_json_fixture(repo_builder)
    calls: List[str] = []

    def runner(command: str, *, cwd: Path) -> int:
        calls.append(command)
        return 0

    config = _merge_config()
    config.post_hooks = {"pkg": ["npm install"]}
    root = repo_builder.path()

    for _ in range(2):
        run_sync(
            root,
            repo_builder.index_path(),
            "repo",
            write=True,
            sync_config=config,
            hook_runner=PostHookRunner(runner),
        )

    assert calls == ["npm install"]


def test_sync_missing_index_raises(repo_builder) -> None:
    with pytest.raises(IndexLoadError):
        run_sync(repo_builder.path(), repo_builder.index_path(), "repo")
