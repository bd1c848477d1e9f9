"""Policy-driven JSON formatter: key order plus blank-line placement."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from .config import LineBreakConfig
from .documents import display_path, load_document, pretty_print, resolve_targets, write_atomic
from .engine.linebreaks import LineBreakSettings, apply_linebreaks, resolve_settings
from .engine.normalizer import normalize
from .logging import get_logger
from .models import FormatResult
from .parallel import map_documents
from .policy import OrderSpec, Policy, PolicyLoadError, load_index, load_policy

_logger = get_logger("formatter")


def render_document(
    document: object,
    original: str,
    order: OrderSpec,
    settings: Optional[LineBreakSettings],
) -> str:
    """Normalized, pretty-printed text; `settings=None` skips line-break rules.

    The rendered text ends with a newline exactly when `original` does.
    """
    normalized, _ = normalize(document, order)
    text = pretty_print(normalized)
    if settings is not None:
        text = apply_linebreaks(text, original, order, settings)
    if original.endswith("\n"):
        text += "\n"
    return text


def format_document(
    path: Path,
    order: Optional[OrderSpec],
    settings: Optional[LineBreakSettings],
    *,
    file_label: str,
    write: bool = False,
    capture_old: bool = False,
) -> FormatResult:
    loaded = load_document(path)
    if loaded is None:
        return FormatResult(file=file_label, changed=False)
    original, document = loaded
    previous = original if capture_old else None
    if order is None:
        return FormatResult(file=file_label, changed=False, original=previous)

    rendered = render_document(document, original, order, settings)
    if rendered == original:
        return FormatResult(file=file_label, changed=False, original=previous)
    if write:
        wrote = write_atomic(path, rendered)
        if wrote:
            _logger.debug("Formatted %s", file_label)
        return FormatResult(file=file_label, changed=True, wrote=wrote, original=previous)
    return FormatResult(file=file_label, changed=True, preview=rendered, original=previous)


def run_format(
    repo_root: Path,
    index_path: Path,
    *,
    write: bool = False,
    capture_old: bool = False,
    strict_linebreak: bool = True,
    linebreak: Optional[LineBreakConfig] = None,
    pattern_overrides: Optional[Mapping[str, Sequence[str]]] = None,
    max_workers: Optional[int] = None,
) -> List[FormatResult]:
    """Format every document matched by the index rules.

    Raises `IndexLoadError` when the index cannot be loaded. A rule whose
    policy is missing or invalid is treated as having no order, so its
    documents are reported unchanged.
    """
    index = load_index(index_path)
    overrides = pattern_overrides or {}
    lb = linebreak or LineBreakConfig()
    policies: Dict[Path, Optional[Policy]] = {}

    results: List[FormatResult] = []
    for rule in index.rules:
        policy_path = index_path.parent / rule.policy
        if policy_path not in policies:
            policies[policy_path] = _load_policy_or_none(policy_path)
        policy = policies[policy_path]
        order = policy.order if policy is not None else None
        settings = None
        if strict_linebreak:
            settings = resolve_settings(
                policy.linebreak if policy is not None else None,
                between_groups=lb.between_groups,
                before_fields=lb.before_fields,
                in_fields=lb.in_fields,
            )

        patterns = overrides.get(rule.id)
        targets = resolve_targets(repo_root, list(patterns) if patterns is not None else rule.patterns)

        def _format(path: Path) -> FormatResult:
            return format_document(
                path,
                order,
                settings,
                file_label=display_path(path, repo_root),
                write=write,
                capture_old=capture_old,
            )

        rule_results = map_documents(_format, targets, max_workers=max_workers)
        rule_results.sort(key=lambda result: result.file)
        results.extend(rule_results)
    return results


def _load_policy_or_none(path: Path) -> Optional[Policy]:
    try:
        return load_policy(path)
    except PolicyLoadError as exc:
        _logger.warning("%s; documents for this policy are left unformatted", exc)
        return None


__all__ = ["format_document", "render_document", "run_format"]
