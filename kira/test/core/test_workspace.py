"""Tests for kira.core.workspace."""

from __future__ import annotations

from pathlib import Path

import pytest

from kira.core.result import Err, Ok
from kira.core.workspace import (
    WORKSPACE_ENV_VAR,
    detect_workspace,
    find_workspace_upward,
    is_workspace_root,
)


@pytest.fixture(autouse=True)
def _no_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(WORKSPACE_ENV_VAR, raising=False)


class TestIsWorkspaceRoot:
    def test_kira_yml(self, tmp_path: Path) -> None:
        (tmp_path / "kira.yml").write_text("", encoding="utf-8")
        assert is_workspace_root(tmp_path)

    def test_work_dir(self, tmp_path: Path) -> None:
        (tmp_path / ".work").mkdir()
        assert is_workspace_root(tmp_path)

    def test_plain_dir(self, tmp_path: Path) -> None:
        assert not is_workspace_root(tmp_path)


class TestDetectWorkspace:
    def test_upward_search(self, tmp_path: Path) -> None:
        (tmp_path / ".work").mkdir()
        nested = tmp_path / "src" / "pkg"
        nested.mkdir(parents=True)
        assert find_workspace_upward(nested) == tmp_path

        result = detect_workspace(start_dir=nested)
        assert isinstance(result, Ok)
        assert result.value.root == tmp_path.resolve()
        assert result.value.source == "cwd"

    def test_env_var_wins(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        ws = tmp_path / "ws"
        (ws / ".work").mkdir(parents=True)
        other = tmp_path / "other"
        (other / ".work").mkdir(parents=True)
        monkeypatch.setenv(WORKSPACE_ENV_VAR, str(ws))

        result = detect_workspace(start_dir=other)
        assert isinstance(result, Ok)
        assert result.value.root == ws.resolve()
        assert result.value.source == "env"

    def test_invalid_env_var(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(WORKSPACE_ENV_VAR, str(tmp_path / "missing"))
        result = detect_workspace(start_dir=tmp_path)
        assert isinstance(result, Err)
        assert WORKSPACE_ENV_VAR in result.error.message

    def test_not_found(self, tmp_path: Path) -> None:
        result = detect_workspace(start_dir=tmp_path)
        if isinstance(result, Ok):
            pytest.skip("a parent of tmp_path happens to be a kira workspace")
        assert "not a kira workspace" in result.error.message
        assert result.error.hint
