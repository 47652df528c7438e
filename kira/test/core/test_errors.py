"""Tests for kira.core.errors."""

from __future__ import annotations

from kira.core.errors import ErrorCode


class TestErrorCode:
    def test_values_are_stable(self) -> None:
        assert ErrorCode.OK == 0
        assert ErrorCode.USER_ERROR == 1
        assert ErrorCode.ENV_ERROR == 2
        assert ErrorCode.GIT_ERROR == 3
        assert ErrorCode.CONFLICTS == 4
        assert ErrorCode.BLOCKED == 5

    def test_str(self) -> None:
        assert str(ErrorCode.GIT_ERROR) == "git error"

    def test_success_flags(self) -> None:
        assert ErrorCode.OK.is_success
        assert not ErrorCode.OK.is_error
        assert ErrorCode.BLOCKED.is_error
