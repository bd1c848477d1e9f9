"""Shell commands run after sync writes a target."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Iterable, Mapping, Sequence

from .logging import get_logger
from .models import SyncAction

_logger = get_logger("hooks")


class PostHookRunner:
    """Runs `[sync.hooks.post]` commands for every action that wrote its target."""

    def __init__(self, runner: Callable[..., int] | None = None) -> None:
        self._runner = runner or self._default_runner

    def run(
        self,
        root: Path,
        actions: Iterable[SyncAction],
        hooks: Mapping[str, Sequence[str]],
    ) -> int:
        """Execute hooks in action order; returns the number of failed commands."""
        failures = 0
        for action in actions:
            if not action.wrote:
                continue
            for command in hooks.get(action.rule_id, ()):
                if not command.strip():
                    continue
                _logger.info("Running post-sync hook for %s: %s", action.rule_id, command)
                try:
                    returncode = self._runner(command, cwd=root)
                except OSError as exc:
                    _logger.warning("Post-sync hook failed to start (%s): %s", command, exc)
                    failures += 1
                    continue
                if returncode != 0:
                    _logger.warning(
                        "Post-sync hook exited with status %s: %s", returncode, command
                    )
                    failures += 1
        return failures

    @staticmethod
    def _default_runner(command: str, *, cwd: Path) -> int:
        completed = subprocess.run(command, cwd=str(cwd), shell=True, check=False)
        return completed.returncode


__all__ = ["PostHookRunner"]
