"""Index and policy schemas plus their loaders.

An index lists lint/format rules (`[[rules]]`: id, patterns, policy file)
and sync rules (`[[sync]]`: id, source, target, when, format). Policies
declare `checks`, an optional key `order`, and optional `linebreak`
behaviour. Both files are TOML by default; `.yaml`/`.yml` and `.json`
variants are accepted based on the file suffix.
"""

from __future__ import annotations

import json
import tomllib
from enum import StrEnum
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

_WILDCARD_SCOPES = {"", "*", "any", "all"}


class IndexLoadError(RuntimeError):
    """Raised when the index file is missing or cannot be parsed."""

    def __init__(self, path: Path, reason: str, detail: str = "") -> None:
        self.path = path
        self.reason = reason
        message = (
            f"Index file not found: {path}"
            if reason == "missing"
            else f"Index file is not valid: {path}"
        )
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class PolicyLoadError(RuntimeError):
    """Raised when a policy referenced by the index is missing or invalid."""

    def __init__(self, path: Path, reason: str, detail: str = "") -> None:
        self.path = path
        self.reason = reason
        message = (
            f"Policy file not found: {path}"
            if reason == "missing"
            else f"Policy file is not valid: {path}"
        )
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class LineBreakRule(StrEnum):
    KEEP = "keep"
    NONE = "none"

    @classmethod
    def from_override(cls, value: object) -> "LineBreakRule":
        """Config overrides accept "keep"; any other value means none."""
        return cls.KEEP if str(value).strip().lower() == "keep" else cls.NONE


class _Check(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message: Optional[str] = None
    level: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("level", "severity")
    )


class RequiredCheck(_Check):
    kind: Literal["required"]
    fields: List[str] = Field(default_factory=list)


class TypeCheck(_Check):
    kind: Literal["type"]
    fields: Dict[str, str] = Field(default_factory=dict)


class ConstCheck(_Check):
    kind: Literal["const"]
    field: str
    value: Any = None


class PatternCheck(_Check):
    kind: Literal["pattern"]
    field: str
    regex: str


class EnumCheck(_Check):
    kind: Literal["enum"]
    field: str
    values: List[Any] = Field(default_factory=list)


class MinLengthCheck(_Check):
    kind: Literal["minLength"]
    field: str
    min: int


class MaxLengthCheck(_Check):
    kind: Literal["maxLength"]
    field: str
    max: int


Check = Annotated[
    Union[
        RequiredCheck,
        TypeCheck,
        ConstCheck,
        PatternCheck,
        EnumCheck,
        MinLengthCheck,
        MaxLengthCheck,
    ],
    Field(discriminator="kind"),
]


class OrderSpec(BaseModel):
    """Top-level key groups, named sub-orders, and order-lint metadata."""

    model_config = ConfigDict(populate_by_name=True)

    top: List[List[str]] = Field(default_factory=list)
    sub: Dict[str, List[str]] = Field(default_factory=dict)
    message: Optional[str] = None
    level: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("level", "severity")
    )

    def repeated_keys(self) -> List[str]:
        """Keys listed in more than one group (first group wins when normalizing)."""
        seen: set[str] = set()
        repeated: set[str] = set()
        groups = list(self.top) + list(self.sub.values())
        for group in groups:
            for key in dict.fromkeys(group):
                if key in seen:
                    repeated.add(key)
                seen.add(key)
        return sorted(repeated)


class LineBreakSpec(BaseModel):
    between_groups: Optional[bool] = None
    before_fields: Dict[str, LineBreakRule] = Field(default_factory=dict)
    in_fields: Dict[str, LineBreakRule] = Field(default_factory=dict)


class Policy(BaseModel):
    """Rule set for one category of document."""

    checks: List[Check] = Field(default_factory=list)
    order: Optional[OrderSpec] = None
    linebreak: Optional[LineBreakSpec] = None


class RuleIndex(BaseModel):
    id: str
    patterns: List[str] = Field(default_factory=list)
    policy: str


class SyncRule(BaseModel):
    id: str
    source: str
    target: str
    when: str = ""
    format: Optional[str] = None
    message: Optional[str] = None
    level: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("level", "severity")
    )

    @property
    def is_structured(self) -> bool:
        return (self.format or "").strip().lower() == "json"

    def enabled_for(self, scope: str) -> bool:
        return scope_matches(self.when, scope)


class SyncLintDefaults(BaseModel):
    """Defaults for issues raised when lint finds a target out of sync."""

    message: Optional[str] = None
    level: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("level", "severity")
    )


class Index(BaseModel):
    rules: List[RuleIndex] = Field(default_factory=list)
    sync: List[SyncRule] = Field(default_factory=list)
    lint: Optional[SyncLintDefaults] = None

    def duplicate_rule_ids(self) -> List[str]:
        seen: set[str] = set()
        duplicates: set[str] = set()
        for rule_id in [rule.id for rule in self.rules] + [rule.id for rule in self.sync]:
            if rule_id in seen:
                duplicates.add(rule_id)
            seen.add(rule_id)
        return sorted(duplicates)


def scope_matches(when: str, scope: str) -> bool:
    """Return True when the `when` expression enables a rule for `scope`.

    `when` is a comma or pipe separated token list compared case-insensitively;
    an empty value, `*`, `any`, or `all` always matches.
    """
    expression = (when or "").strip()
    if expression.lower() in _WILDCARD_SCOPES:
        return True
    wanted = scope.strip().lower()
    tokens = expression.replace("|", ",").split(",")
    return any(token.strip() and token.strip().lower() == wanted for token in tokens)


def read_structured(path: Path) -> Any:
    """Parse a TOML, YAML, or JSON file chosen by suffix (TOML by default)."""
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        return yaml.safe_load(text) or {}
    if suffix == ".json":
        return json.loads(text)
    return tomllib.loads(text)


_PARSE_ERRORS = (
    tomllib.TOMLDecodeError,
    yaml.YAMLError,
    json.JSONDecodeError,
    UnicodeDecodeError,
    ValidationError,
)


def load_index(path: Path) -> Index:
    """Load and validate an index file."""
    if not path.is_file():
        raise IndexLoadError(path, "missing")
    try:
        data = read_structured(path)
        return Index.model_validate(data)
    except OSError as exc:
        raise IndexLoadError(path, "missing", str(exc)) from exc
    except _PARSE_ERRORS as exc:
        raise IndexLoadError(path, "invalid", _short_error(exc)) from exc


def load_policy(path: Path) -> Policy:
    """Load and validate a policy file."""
    if not path.is_file():
        raise PolicyLoadError(path, "missing")
    try:
        data = read_structured(path)
        return Policy.model_validate(data)
    except OSError as exc:
        raise PolicyLoadError(path, "missing", str(exc)) from exc
    except _PARSE_ERRORS as exc:
        raise PolicyLoadError(path, "invalid", _short_error(exc)) from exc


def _short_error(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        return f"{exc.error_count()} schema error(s)"
    return str(exc).splitlines()[0] if str(exc) else exc.__class__.__name__


__all__ = [
    "Check",
    "ConstCheck",
    "EnumCheck",
    "Index",
    "IndexLoadError",
    "LineBreakRule",
    "LineBreakSpec",
    "MaxLengthCheck",
    "MinLengthCheck",
    "OrderSpec",
    "PatternCheck",
    "Policy",
    "PolicyLoadError",
    "RequiredCheck",
    "RuleIndex",
    "SyncLintDefaults",
    "SyncRule",
    "TypeCheck",
    "load_index",
    "load_policy",
    "read_structured",
    "scope_matches",
]
