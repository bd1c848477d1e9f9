"""Marker files recording the fingerprint of the last synced content."""

from __future__ import annotations

from pathlib import Path

from ..logging import get_logger

_MARKER_DIR = Path(".convkit") / "sync" / "checksums"
_MARKER_SUFFIX = ".chk"

_logger = get_logger("stores.fingerprints")


class FingerprintStore:
    """Writes one marker per sync target under `.convkit/sync/checksums`.

    Markers are write-only: sync always recomputes fingerprints from the
    target's current text.
    """

    def __init__(self, root: Path) -> None:
        self._root = root
        self._dir = root / _MARKER_DIR

    def marker_path(self, target: Path) -> Path:
        try:
            relative = target.resolve().relative_to(self._root.resolve()).as_posix()
        except ValueError:
            relative = target.as_posix().lstrip("/")
        return self._dir / f"{relative.replace('/', '__')}{_MARKER_SUFFIX}"

    def record(self, target: Path, fingerprint: str) -> bool:
        path = self.marker_path(target)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(fingerprint, encoding="utf-8")
        except OSError as exc:
            _logger.warning("Unable to record fingerprint for %s: %s", target, exc)
            return False
        return True


__all__ = ["FingerprintStore"]
