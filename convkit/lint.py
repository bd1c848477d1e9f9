"""Lint runner: policy checks, key-order conformance, and sync drift."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .config import SyncConfig
from .documents import display_path, load_document, resolve_targets
from .engine.checks import CheckRunner
from .logging import get_logger
from .models import SEVERITY_ERROR, SEVERITY_INFO, Issue, LintResult, normalize_severity, summarize
from .parallel import map_documents
from .policy import (
    Index,
    IndexLoadError,
    Policy,
    PolicyLoadError,
    RuleIndex,
    load_index,
    load_policy,
)
from .sync import drifted_rules

DEFAULT_SYNC_MESSAGE = "Not synced yet. Please run convkit sync."

_logger = get_logger("lint")

_PolicyEntry = Union[Policy, PolicyLoadError]


def run_lint(
    repo_root: Path,
    index_path: Path,
    scope: str = "repo",
    *,
    pattern_overrides: Optional[Mapping[str, Sequence[str]]] = None,
    sync_config: Optional[SyncConfig] = None,
    max_workers: Optional[int] = None,
) -> LintResult:
    """Lint every document matched by the index rules.

    Index problems never raise: they become a single `load-index` or
    `parse-index` issue so callers can render them like any other finding.
    """
    try:
        index = load_index(index_path)
    except IndexLoadError as exc:
        rule = "load-index" if exc.reason == "missing" else "parse-index"
        issue = Issue(
            file=display_path(index_path, repo_root),
            rule=rule,
            severity=SEVERITY_ERROR,
            path="$",
            message=str(exc),
        )
        return LintResult(issues=[issue], summary=summarize([issue], files=0))

    overrides = pattern_overrides or {}
    issues: List[Issue] = _duplicate_rule_issues(index, index_path, repo_root)
    files = 0
    policies: Dict[Path, _PolicyEntry] = {}
    for rule in index.rules:
        rule_issues, rule_files = _lint_rule(
            repo_root,
            index_path,
            rule,
            overrides.get(rule.id),
            policies,
            max_workers=max_workers,
        )
        issues.extend(rule_issues)
        files += rule_files

    issues.extend(_sync_issues(repo_root, index_path, index, scope, sync_config))
    summary = summarize(issues, files)
    _logger.debug(
        "Lint finished: %d error(s), %d warning(s), %d info across %d file(s)",
        summary.errors,
        summary.warnings,
        summary.infos,
        summary.files,
    )
    return LintResult(issues=issues, summary=summary)


def lint_document(
    path: Path, policy: Policy, rule_id: str, file_label: str
) -> Optional[List[Issue]]:
    """Issues for one document, or None when it cannot be read or parsed."""
    loaded = load_document(path)
    if loaded is None:
        return None
    _, document = loaded
    runner = CheckRunner(file_label, rule_id)
    issues = runner.run(policy.checks, document)
    if policy.order is not None:
        order_issue = runner.order_issue(document, policy.order)
        if order_issue is not None:
            issues.append(order_issue)
    return issues


def _lint_rule(
    root: Path,
    index_path: Path,
    rule: RuleIndex,
    override: Optional[Sequence[str]],
    policies: Dict[Path, _PolicyEntry],
    *,
    max_workers: Optional[int],
) -> Tuple[List[Issue], int]:
    policy_path = index_path.parent / rule.policy
    entry = policies.get(policy_path)
    if entry is None:
        entry = _load_policy_entry(policy_path)
        policies[policy_path] = entry
    if isinstance(entry, PolicyLoadError):
        detail = (
            f"Policy file not found for rule '{rule.id}': {display_path(policy_path, root)}"
            if entry.reason == "missing"
            else str(entry)
        )
        issue = Issue(
            file=display_path(policy_path, root),
            rule=rule.id,
            severity=SEVERITY_ERROR,
            path="$",
            message=detail,
        )
        return [issue], 0

    patterns = list(override) if override is not None else list(rule.patterns)
    targets = resolve_targets(root, patterns)
    _logger.debug("Rule %s matched %d file(s)", rule.id, len(targets))

    def _check(path: Path) -> Optional[List[Issue]]:
        return lint_document(path, entry, rule.id, display_path(path, root))

    outcomes = map_documents(_check, targets, max_workers=max_workers)
    issues: List[Issue] = []
    files = 0
    for outcome in outcomes:
        if outcome is None:
            continue
        files += 1
        issues.extend(outcome)
    issues.sort(key=lambda issue: (issue.file, issue.message))
    return issues, files


def _load_policy_entry(path: Path) -> _PolicyEntry:
    try:
        policy = load_policy(path)
    except PolicyLoadError as exc:
        _logger.debug("%s", exc)
        return exc
    if policy.order is not None:
        repeated = policy.order.repeated_keys()
        if repeated:
            _logger.warning(
                "Policy %s lists keys in more than one order group: %s",
                path,
                ", ".join(repeated),
            )
    return policy


def _duplicate_rule_issues(index: Index, index_path: Path, root: Path) -> List[Issue]:
    return [
        Issue(
            file=display_path(index_path, root),
            rule=rule_id,
            severity=SEVERITY_ERROR,
            path="$",
            message=f"Rule id '{rule_id}' is declared more than once in the index",
        )
        for rule_id in index.duplicate_rule_ids()
    ]


def _sync_issues(
    root: Path,
    index_path: Path,
    index: Index,
    scope: str,
    sync_config: Optional[SyncConfig],
) -> List[Issue]:
    if not index.sync:
        return []
    defaults = index.lint
    issues: List[Issue] = []
    for rule, target in drifted_rules(root, index_path, index.sync, scope, sync_config):
        level = rule.level or (defaults.level if defaults else None)
        message = rule.message or (defaults.message if defaults else None)
        issues.append(
            Issue(
                file=display_path(target, root),
                rule=f"sync:{rule.id}",
                severity=normalize_severity(level, default=SEVERITY_INFO),
                path="$",
                message=message or DEFAULT_SYNC_MESSAGE,
            )
        )
    return issues


__all__ = ["DEFAULT_SYNC_MESSAGE", "lint_document", "run_lint"]
