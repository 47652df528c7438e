"""Tests for kira.core.result."""

from __future__ import annotations

from kira.core.result import Err, Ok, Result


class TestOk:
    def test_value_access(self) -> None:
        assert Ok(42).value == 42

    def test_map_transforms_value(self) -> None:
        assert Ok(" main\n").map(str.strip) == Ok("main")

    def test_repr(self) -> None:
        assert repr(Ok("main")) == "Ok('main')"


class TestErr:
    def test_error_access(self) -> None:
        assert Err("boom").error == "boom"

    def test_map_is_noop(self) -> None:
        result = Err("boom")
        assert result.map(lambda v: v) is result

    def test_repr(self) -> None:
        assert repr(Err("boom")) == "Err('boom')"


class TestPatternMatching:
    def _describe(self, result: Result[int, str]) -> str:
        match result:
            case Ok(value):
                return f"ok {value}"
            case Err(error):
                return f"err {error}"

    def test_match_ok(self) -> None:
        assert self._describe(Ok(3)) == "ok 3"

    def test_match_err(self) -> None:
        assert self._describe(Err("nope")) == "err nope"
