"""Path-aware merge of a template document into an existing target.

The merged document starts as a copy of the template (source). Per-path
rules then decide which values come from where:

- `keep` / `noSync`: the target's value survives; when the target lacks the
  path it is removed from the result;
- `override`: the source value wins, even over `keep`/`noSync` for the same
  path;
- `array`: `union` appends unseen source elements to the target's array,
  `replace` takes the source array verbatim.

Whether the target must be rewritten is decided by comparing fingerprints
of the serialized result and of the target's current text.
"""

from __future__ import annotations

import copy
import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from . import paths

ARRAY_UNION = "union"
ARRAY_REPLACE = "replace"


@dataclass
class MergeConfig:
    """Per sync rule merge behaviour supplied by client configuration."""

    keep_paths: List[str] = field(default_factory=list)
    override_paths: List[str] = field(default_factory=list)
    no_sync_paths: List[str] = field(default_factory=list)
    array_strategy: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MergeConfig":
        """Build from a `[sync.config.<id>.merge]` table."""
        array = data.get("array")
        return cls(
            keep_paths=_str_list(data.get("keep")),
            override_paths=_str_list(data.get("override")),
            no_sync_paths=_str_list(data.get("noSync")),
            array_strategy=(
                {str(key): str(value) for key, value in array.items()}
                if isinstance(array, Mapping)
                else {}
            ),
        )


@dataclass
class MergeOutcome:
    """Merged document, its serialized text, and the write decision."""

    document: Any
    text: str
    fingerprint: str
    would_write: bool


def fingerprint(text: str) -> str:
    """Short digest of serialized text used to detect no-op writes."""
    digest = hashlib.sha256(text.encode("utf-8", "surrogatepass")).hexdigest()[:16]
    return f"{digest}-{len(text)}"


def serialize(document: Any) -> str:
    """Serialize with two-space indentation and a trailing newline."""
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def merge(source: Any, target: Optional[Any], config: MergeConfig) -> Any:
    """Return a new document combining `source` and `target` under `config`."""
    result = copy.deepcopy(source)

    for path in config.keep_paths + config.no_sync_paths:
        found, value = paths.lookup(target, path)
        if found:
            result = paths.set_value(result, path, copy.deepcopy(value))
        else:
            result = paths.remove(result, path)

    for path in config.override_paths:
        found, value = paths.lookup(source, path)
        if found:
            result = paths.set_value(result, path, copy.deepcopy(value))

    for path, strategy in config.array_strategy.items():
        found, value = paths.lookup(source, path)
        if not found:
            continue
        if strategy.strip().lower() == ARRAY_UNION:
            if not isinstance(value, list):
                continue
            result = paths.set_value(result, path, union_arrays(target, path, value))
        else:
            result = paths.set_value(result, path, copy.deepcopy(value))

    return result


def union_arrays(target: Any, path: str, source_items: List[Any]) -> List[Any]:
    """Target's elements in order, then source elements not already present."""
    existing = paths.get(target, path)
    merged: List[Any] = copy.deepcopy(existing) if isinstance(existing, list) else []
    for item in source_items:
        if not any(paths.json_equal(item, current) for current in merged):
            merged.append(copy.deepcopy(item))
    return merged


def evaluate_merge(
    source: Any,
    target: Optional[Any],
    current_text: Optional[str],
    config: MergeConfig,
) -> MergeOutcome:
    """Merge and compare against the target's on-disk text.

    `current_text` is None when the target does not exist, which always
    requires a write.
    """
    document = merge(source, target, config)
    text = serialize(document)
    merged_fingerprint = fingerprint(text)
    current = fingerprint(current_text) if current_text is not None else None
    return MergeOutcome(
        document=document,
        text=text,
        fingerprint=merged_fingerprint,
        would_write=merged_fingerprint != current,
    )


def _str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "ARRAY_REPLACE",
    "ARRAY_UNION",
    "MergeConfig",
    "MergeOutcome",
    "evaluate_merge",
    "fingerprint",
    "merge",
    "serialize",
    "union_arrays",
]
