"""Template synchronization driven by the index `sync` rules.

Each enabled rule copies its source (file or directory) onto a target, or,
for `format = "json"` rules with a client merge configuration, merges the
source document into the existing target path by path. Writes only happen
when the merged text's fingerprint differs from the target's current text.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import List, Optional, Tuple

from .config import SyncClientConfig, SyncConfig
from .documents import parse_json, read_text, write_atomic
from .engine.merge import evaluate_merge
from .hooks import PostHookRunner
from .logging import get_logger
from .models import SyncAction
from .policy import SyncRule, load_index
from .stores.fingerprints import FingerprintStore

_logger = get_logger("sync")


def resolve_source(index_path: Path, source: str) -> Path:
    """Sources are relative to the directory holding the index."""
    return index_path.parent / source


def resolve_target(root: Path, rule: SyncRule, client: Optional[SyncClientConfig]) -> Path:
    """Targets are relative to the repository root; client config may override them."""
    target = client.target if client is not None and client.target else rule.target
    return root / target


def copy_path(source: Path, target: Path, *, write: bool) -> Tuple[bool, bool]:
    """Copy a file or directory tree; returns `(wrote, would_write)`."""
    if source.is_file():
        if not write:
            return False, True
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as exc:
            _logger.warning("Failed to copy %s to %s: %s", source, target, exc)
            return False, True
        return True, True
    if source.is_dir():
        wrote = False
        would_write = False
        if write:
            try:
                target.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                _logger.warning("Failed to create %s: %s", target, exc)
        for child in sorted(source.iterdir()):
            child_wrote, child_would = copy_path(child, target / child.name, write=write)
            wrote = wrote or child_wrote
            would_write = would_write or child_would
        return wrote, would_write
    _logger.debug("Sync source %s does not exist", source)
    return False, False


def merge_path(
    source: Path,
    target: Path,
    client: SyncClientConfig,
    *,
    write: bool,
    store: Optional[FingerprintStore] = None,
) -> Tuple[bool, bool]:
    """Merge a JSON source into `target`; falls back to copying unparseable sources."""
    source_text = read_text(source)
    if source_text is None:
        return False, False
    ok, source_doc = parse_json(source_text)
    if not ok or client.merge is None:
        return copy_path(source, target, write=write)

    current_text = read_text(target) if target.is_file() else None
    target_doc = None
    if current_text is not None:
        parsed, document = parse_json(current_text)
        target_doc = document if parsed else None

    outcome = evaluate_merge(source_doc, target_doc, current_text, client.merge)
    if not outcome.would_write:
        return False, False
    if not write:
        return False, True
    if store is not None:
        store.record(target, outcome.fingerprint)
    return write_atomic(target, outcome.text), True


def apply_sync(
    rule: SyncRule,
    source: Path,
    target: Path,
    client: Optional[SyncClientConfig],
    *,
    write: bool,
    store: Optional[FingerprintStore] = None,
) -> Tuple[bool, bool]:
    """Dispatch one rule to the structured merge or the plain copy path."""
    if rule.is_structured and client is not None and client.merge is not None:
        return merge_path(source, target, client, write=write, store=store)
    return copy_path(source, target, write=write)


def run_sync(
    repo_root: Path,
    index_path: Path,
    scope: str,
    *,
    write: bool = False,
    sync_config: Optional[SyncConfig] = None,
    hook_runner: Optional[PostHookRunner] = None,
) -> List[SyncAction]:
    """Evaluate every enabled sync rule for `scope`.

    Raises `IndexLoadError` when the index cannot be loaded.
    """
    index = load_index(index_path)
    config = sync_config or SyncConfig()
    ignored = set(config.ignore)
    store = FingerprintStore(repo_root)

    actions: List[SyncAction] = []
    for rule in index.sync:
        if rule.id in ignored:
            _logger.debug("Skipping ignored sync rule %s", rule.id)
            continue
        if not rule.enabled_for(scope):
            _logger.debug("Sync rule %s not enabled for scope %s", rule.id, scope)
            continue
        client = config.clients.get(rule.id)
        source = resolve_source(index_path, rule.source)
        target = resolve_target(repo_root, rule, client)
        wrote, would_write = apply_sync(
            rule, source, target, client, write=write, store=store
        )
        if wrote:
            _logger.info("Synced %s -> %s", rule.id, target)
        actions.append(
            SyncAction(
                rule_id=rule.id,
                source=str(source),
                target=str(target),
                wrote=wrote,
                would_write=would_write,
                format=rule.format,
            )
        )

    if write and config.post_hooks:
        (hook_runner or PostHookRunner()).run(repo_root, actions, config.post_hooks)
    return actions


def drifted_rules(
    repo_root: Path,
    index_path: Path,
    rules: List[SyncRule],
    scope: str,
    sync_config: Optional[SyncConfig] = None,
) -> List[Tuple[SyncRule, Path]]:
    """Rules whose targets would change if sync ran now (never writes)."""
    config = sync_config or SyncConfig()
    ignored = set(config.ignore)
    drifted: List[Tuple[SyncRule, Path]] = []
    for rule in rules:
        if rule.id in ignored or not rule.enabled_for(scope):
            continue
        client = config.clients.get(rule.id)
        target = resolve_target(repo_root, rule, client)
        _, would_write = apply_sync(
            rule, resolve_source(index_path, rule.source), target, client, write=False
        )
        if would_write:
            drifted.append((rule, target))
    return drifted


__all__ = [
    "apply_sync",
    "copy_path",
    "drifted_rules",
    "merge_path",
    "resolve_source",
    "resolve_target",
    "run_sync",
]
