from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from tests._fixtures.repo_builder import RemoteRepo, RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable repo builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def remote_repo(tmp_path: Path) -> RemoteRepo:
    """Provide a seed repository publishing to a local bare remote."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    return RemoteRepo(tmp_path)
