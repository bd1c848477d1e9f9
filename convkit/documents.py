"""Reading, rendering, and writing JSON documents, plus target discovery."""

from __future__ import annotations

import glob
import json
import os
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

from .logging import get_logger

_logger = get_logger("documents")


def read_text(path: Path) -> Optional[str]:
    """Return the file's text, or None when it cannot be read."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        _logger.debug("Unable to read %s: %s", path, exc)
        return None


def parse_json(text: str) -> Tuple[bool, Any]:
    """Return `(ok, document)`; `ok` is False for malformed JSON."""
    try:
        return True, json.loads(text)
    except (ValueError, RecursionError):
        return False, None


def load_document(path: Path) -> Optional[Tuple[str, Any]]:
    """Read and parse a JSON file; None when unreadable or unparseable."""
    text = read_text(path)
    if text is None:
        return None
    ok, document = parse_json(text)
    if not ok:
        _logger.debug("Skipping %s: not valid JSON", path)
        return None
    return text, document


def pretty_print(document: Any) -> str:
    """Two-space indented JSON with one key per line and no trailing newline."""
    return json.dumps(document, indent=2, ensure_ascii=False)


def write_atomic(path: Path, text: str) -> bool:
    """Write `text` through a temporary sibling file; False when the write fails."""
    tmp_path = path.with_name(f"{path.name}.convkit.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tmp_path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except (OSError, UnicodeEncodeError) as exc:
        _logger.warning("Failed to write %s: %s", path, exc)
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError as cleanup_exc:
            _logger.debug("Unable to remove %s: %s", tmp_path, cleanup_exc)
        return False
    return True


def resolve_targets(root: Path, patterns: Sequence[str]) -> List[Path]:
    """Expand glob patterns relative to `root` into a sorted, de-duplicated file list."""
    found: dict[str, Path] = {}
    for pattern in patterns:
        absolute = pattern if os.path.isabs(pattern) else str(root / pattern)
        for match in glob.glob(absolute, recursive=True):
            candidate = Path(match)
            if candidate.is_file():
                found.setdefault(str(candidate), candidate)
    return [found[key] for key in sorted(found)]


def display_path(path: Path, root: Path) -> str:
    """Path relative to `root` when possible, POSIX separators."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


__all__ = [
    "display_path",
    "load_document",
    "parse_json",
    "pretty_print",
    "read_text",
    "resolve_targets",
    "write_atomic",
]
