"""Tests for BestEffortRunner."""

import threading
from collections.abc import Generator

import pytest
from structlog.testing import capture_logs

from buddyflow.application.common.best_effort import BestEffortRunner


@pytest.fixture
def runner() -> Generator[BestEffortRunner, None, None]:
    best_effort = BestEffortRunner(timeout_seconds=0.2)
    yield best_effort
    best_effort.shutdown()


class TestBestEffortRunner:
    def test_returns_the_result(self, runner: BestEffortRunner) -> None:
        assert runner.run("adder", lambda a, b: a + b, 2, 3, fallback=0) == 5

    def test_keyword_arguments_are_passed(self, runner: BestEffortRunner) -> None:
        assert runner.run("join", "-".join, ["a", "b"], fallback="") == "a-b"
        assert runner.run("dict", dict, fallback={}, key="value") == {"key": "value"}

    def test_failure_returns_the_fallback(self, runner: BestEffortRunner) -> None:
        def broken() -> list[str]:
            raise RuntimeError("service unavailable")

        with capture_logs() as logs:
            result = runner.run("achievements", broken, fallback=[])

        assert result == []
        assert logs[0]["event"] == "side_channel_failed"
        assert logs[0]["side_channel"] == "achievements"
        assert logs[0]["error_type"] == "RuntimeError"

    def test_timeout_returns_the_fallback(self) -> None:
        runner = BestEffortRunner(timeout_seconds=0.05)
        release = threading.Event()
        try:
            with capture_logs() as logs:
                result = runner.run("notifications", release.wait, 5, fallback=None)
        finally:
            release.set()
            runner.shutdown()

        assert result is None
        assert logs[0]["event"] == "side_channel_timed_out"
        assert logs[0]["timeout_seconds"] == 0.05

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            BestEffortRunner(timeout_seconds=0)
