from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.repo_builder import ConventionRepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> ConventionRepoBuilder:
    """Provide a reusable convention repo builder rooted at the pytest tmp_path."""
    return ConventionRepoBuilder(tmp_path)
