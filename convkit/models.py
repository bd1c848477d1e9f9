"""Result models shared by the lint, format, and sync drivers."""

from dataclasses import dataclass, field
from typing import List, Optional

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"
SEVERITY_INFO = "info"


def normalize_severity(level: Optional[str], default: str = SEVERITY_ERROR) -> str:
    """Map a policy `level` value onto error/warning/info."""
    if level is None:
        return default
    lowered = level.strip().lower()
    if lowered in {"warn", "warning"}:
        return SEVERITY_WARNING
    if lowered == SEVERITY_INFO:
        return SEVERITY_INFO
    if lowered == SEVERITY_ERROR:
        return SEVERITY_ERROR
    return default


@dataclass
class Issue:
    """A single lint finding."""

    file: str
    rule: str
    severity: str
    path: str
    message: str


@dataclass
class Summary:
    """Aggregated lint counts."""

    errors: int = 0
    warnings: int = 0
    infos: int = 0
    files: int = 0


@dataclass
class LintResult:
    """Issues plus summary for one lint invocation."""

    issues: List[Issue] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)


@dataclass
class FormatResult:
    """Outcome of formatting one document."""

    file: str
    changed: bool
    wrote: bool = False
    preview: Optional[str] = None
    original: Optional[str] = None


@dataclass
class SyncAction:
    """Outcome of evaluating one sync rule."""

    rule_id: str
    source: str
    target: str
    wrote: bool
    would_write: bool
    format: Optional[str] = None


def summarize(issues: List[Issue], files: int) -> Summary:
    """Count issues per severity."""
    summary = Summary(files=files)
    for issue in issues:
        if issue.severity == SEVERITY_ERROR:
            summary.errors += 1
        elif issue.severity == SEVERITY_WARNING:
            summary.warnings += 1
        else:
            summary.infos += 1
    return summary
