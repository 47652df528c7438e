"""Tests for kira.git.state."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

from kira.core.result import Err, Ok
from kira.git.repository import GitError, Repository, RepositoryInfo, parse_porcelain
from kira.git.state import (
    STATE_PRIORITY,
    RepositoryState,
    RepositoryStateInfo,
    aggregate_states,
    blocking_states,
    detect_all,
    detect_state,
    resolution_hint,
)
from kira.test.gitutil import GitSandbox, commit, git, requires_git, write


def _info(name: str = "repo", path: Path | None = None) -> RepositoryInfo:
    return RepositoryInfo(name=name, path=path or Path("/tmp") / name, trunk_branch="main")


def _fake_git(
    *,
    rebase: bool = False,
    merge: bool = False,
    porcelain: str = "",
    diff_check: str = "",
    status_text: str = "On branch main\nnothing to commit, working tree clean\n",
) -> MagicMock:
    fake = MagicMock(spec=Repository)
    fake.rebase_in_progress.return_value = rebase
    fake.merge_in_progress.return_value = merge
    fake.status_entries.return_value = Ok(parse_porcelain(porcelain))
    fake.diff_check_output.return_value = diff_check
    fake.status_text.return_value = Ok(status_text)
    return fake


def _state(name: str, state: RepositoryState) -> RepositoryStateInfo:
    return RepositoryStateInfo(repo=_info(name), state=state)


# =============================================================================
# Detection (mocked git)
# =============================================================================


class TestDetectState:
    def test_ready(self) -> None:
        info = detect_state(_info(), _fake_git())
        assert info.state is RepositoryState.READY_FOR_UPDATE

    def test_dirty(self) -> None:
        info = detect_state(_info(), _fake_git(porcelain=" M a.txt\0?? b.txt\0"))
        assert info.state is RepositoryState.DIRTY_WORKING_DIRECTORY
        assert "2" in info.detail

    def test_rebase_without_conflicts(self) -> None:
        info = detect_state(_info(), _fake_git(rebase=True))
        assert info.state is RepositoryState.IN_REBASE

    def test_rebase_with_conflicts(self) -> None:
        fake = _fake_git(rebase=True, status_text="Unmerged paths:\n\tboth modified:   a.txt\n")
        info = detect_state(_info(), fake)
        assert info.state is RepositoryState.CONFLICTS_EXIST
        assert info.detail == "conflicts detected during rebase operation"

    def test_merge_without_conflicts(self) -> None:
        info = detect_state(_info(), _fake_git(merge=True))
        assert info.state is RepositoryState.IN_MERGE

    def test_merge_with_leftover_markers(self) -> None:
        fake = _fake_git(merge=True, diff_check="a.txt:3: leftover conflict marker\n")
        info = detect_state(_info(), fake)
        assert info.state is RepositoryState.CONFLICTS_EXIST
        assert info.detail == "conflicts detected during merge operation"

    def test_porcelain_conflict_codes_name_files(self) -> None:
        info = detect_state(_info(), _fake_git(porcelain="UU a.txt\0AA b.txt\0 M c.txt\0"))
        assert info.state is RepositoryState.CONFLICTS_EXIST
        assert info.detail == "conflicts in: a.txt, b.txt"

    def test_unmerged_names_are_unquoted(self) -> None:
        info = detect_state(_info(), _fake_git(porcelain="UU my file.txt\0"))
        assert info.detail == "conflicts in: my file.txt"

    def test_change_count_counts_renames_once(self) -> None:
        info = detect_state(_info(), _fake_git(porcelain="R  b.txt\0a.txt\0?? c.txt\0"))
        assert info.state is RepositoryState.DIRTY_WORKING_DIRECTORY
        assert info.detail == "2 uncommitted change(s)"

    def test_conflict_without_named_files(self) -> None:
        fake = _fake_git(porcelain=" M a.txt\0", status_text="deleted by them: a.txt\n")
        info = detect_state(_info(), fake)
        assert info.state is RepositoryState.CONFLICTS_EXIST
        assert info.detail == "merge conflicts detected"

    def test_status_failure_is_error(self) -> None:
        fake = _fake_git()
        fake.status_entries.return_value = Err(
            GitError(command="status --porcelain", message="fatal: not a git repository")
        )
        info = detect_state(_info(), fake)
        assert info.state is RepositoryState.ERROR
        assert info.error == "fatal: not a git repository"

    def test_detect_all_isolates_failures(self, tmp_path: Path) -> None:
        missing = _info("missing", tmp_path / "missing")
        states = detect_all([missing, missing])
        assert [s.state for s in states] == [RepositoryState.ERROR, RepositoryState.ERROR]


# =============================================================================
# Aggregation
# =============================================================================


class TestAggregateStates:
    def test_empty_is_ready(self) -> None:
        aggregated = aggregate_states([])
        assert aggregated.overall_state is RepositoryState.READY_FOR_UPDATE
        assert aggregated.states == ()

    def test_priority_order(self) -> None:
        assert STATE_PRIORITY[0] is RepositoryState.CONFLICTS_EXIST
        assert STATE_PRIORITY.index(RepositoryState.IN_REBASE) < STATE_PRIORITY.index(
            RepositoryState.IN_MERGE
        )
        assert set(STATE_PRIORITY) == set(RepositoryState)

    def test_conflicts_always_win(self) -> None:
        for other in RepositoryState:
            states = [_state("a", other), _state("b", RepositoryState.CONFLICTS_EXIST)]
            assert aggregate_states(states).overall_state is RepositoryState.CONFLICTS_EXIST

    def test_rebase_beats_merge(self) -> None:
        states = [
            _state("a", RepositoryState.IN_MERGE),
            _state("b", RepositoryState.IN_REBASE),
        ]
        assert aggregate_states(states).overall_state is RepositoryState.IN_REBASE

    def test_dirty_beats_error(self) -> None:
        states = [_state("a", RepositoryState.ERROR), _state("b", RepositoryState.DIRTY_WORKING_DIRECTORY)]
        assert aggregate_states(states).overall_state is RepositoryState.DIRTY_WORKING_DIRECTORY

    def test_buckets(self) -> None:
        states = [
            _state("c", RepositoryState.CONFLICTS_EXIST),
            _state("d", RepositoryState.DIRTY_WORKING_DIRECTORY),
            _state("r", RepositoryState.IN_REBASE),
            _state("m", RepositoryState.IN_MERGE),
            _state("e", RepositoryState.ERROR),
            _state("ok", RepositoryState.READY_FOR_UPDATE),
        ]
        aggregated = aggregate_states(states)
        assert aggregated.conflicting == ("c",)
        assert aggregated.dirty == ("d",)
        assert aggregated.in_operation == ("r", "m")
        assert aggregated.errored == ("e",)
        assert aggregated.ready == ("ok",)
        assert [s.name for s in aggregated.with_state(RepositoryState.IN_MERGE)] == ["m"]


class TestBlockingStates:
    def test_ready_and_dirty_do_not_block(self) -> None:
        aggregated = aggregate_states(
            [
                _state("a", RepositoryState.READY_FOR_UPDATE),
                _state("b", RepositoryState.DIRTY_WORKING_DIRECTORY),
            ]
        )
        assert blocking_states(aggregated) == []

    def test_blocking(self) -> None:
        aggregated = aggregate_states(
            [
                _state("a", RepositoryState.IN_MERGE),
                _state("b", RepositoryState.READY_FOR_UPDATE),
                _state("c", RepositoryState.ERROR),
            ]
        )
        assert [s.name for s in blocking_states(aggregated)] == ["a", "c"]

    def test_hints(self) -> None:
        assert "git merge --abort" in (resolution_hint(RepositoryState.IN_MERGE) or "")
        assert resolution_hint(RepositoryState.READY_FOR_UPDATE) is None


# =============================================================================
# Detection (real git)
# =============================================================================


@requires_git
class TestDetectStateRealGit:
    def test_clean_and_dirty(self, sandbox: GitSandbox) -> None:
        path = sandbox.clone("work")
        info = _info("work", path)
        assert detect_state(info).state is RepositoryState.READY_FOR_UPDATE

        write(path / "README.md", "changed\n")
        assert detect_state(info).state is RepositoryState.DIRTY_WORKING_DIRECTORY

    def test_conflicted_then_resolved_rebase(self, sandbox: GitSandbox) -> None:
        path = sandbox.feature_clone("work", file="README.md", content="mine\n")
        sandbox.publish("README.md", "theirs\n")
        git(path, "fetch", "-q", "origin", "main")
        git(path, "rebase", "origin/main", check=False)
        info = _info("work", path)

        conflicted = detect_state(info)
        assert conflicted.state is RepositoryState.CONFLICTS_EXIST

        write(path / "README.md", "resolved\n")
        git(path, "add", "README.md")
        assert detect_state(info).state is RepositoryState.IN_REBASE

    def test_conflicted_merge(self, tmp_path: Path, git_env: None) -> None:
        path = tmp_path / "repo"
        path.mkdir()
        git(path, "init", "-q", "-b", "main")
        commit(path, "a.txt", "base\n")
        git(path, "checkout", "-q", "-b", "side")
        commit(path, "a.txt", "side\n")
        git(path, "checkout", "-q", "main")
        commit(path, "a.txt", "main\n")
        git(path, "merge", "side", check=False)

        info = detect_state(_info("repo", path))
        assert info.state is RepositoryState.CONFLICTS_EXIST
        assert info.detail == "conflicts detected during merge operation"
