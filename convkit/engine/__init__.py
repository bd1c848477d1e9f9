"""Pure document transformations: ordering, line breaks, checks, and merging."""

from .checks import CheckRunner, run_checks
from .linebreaks import LineBreakSettings, apply_linebreaks, resolve_settings
from .merge import MergeConfig, MergeOutcome, evaluate_merge, fingerprint, merge
from .normalizer import expected_key_order, normalize

__all__ = [
    "CheckRunner",
    "LineBreakSettings",
    "MergeConfig",
    "MergeOutcome",
    "apply_linebreaks",
    "evaluate_merge",
    "expected_key_order",
    "fingerprint",
    "merge",
    "normalize",
    "resolve_settings",
    "run_checks",
]
