from __future__ import annotations

from pathlib import Path

import pytest

from kira.test.gitutil import GIT_IDENTITY, GitSandbox


@pytest.fixture
def git_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Deterministic identity and no user/global git config for every git call."""
    for key, value in GIT_IDENTITY.items():
        monkeypatch.setenv(key, value)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("LC_ALL", "C")
    monkeypatch.delenv("KIRA_WORKSPACE", raising=False)


@pytest.fixture
def sandbox(tmp_path: Path, git_env: None) -> GitSandbox:
    root = tmp_path / "sandbox"
    root.mkdir()
    return GitSandbox(root)
