"""
Time-bounded runner for side channels.

Notifications and achievement checks run after the progress update has
been committed. Whatever they do, the caller gets its result: failures and
timeouts are logged and replaced by a fallback value.
"""

import concurrent.futures
from collections.abc import Callable
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class BestEffortRunner:
    """Run side-channel calls on a small thread pool with a timeout."""

    def __init__(self, timeout_seconds: float, max_workers: int = 4) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.timeout_seconds = timeout_seconds
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="side-channel"
        )

    def run(self, name: str, fn: Callable[..., T], *args: Any, fallback: T, **kwargs: Any) -> T:
        """
        Call ``fn`` and return its result, or ``fallback`` on failure or timeout.

        Args:
            name: Side channel name used in logs
            fn: Callable to run
            fallback: Value returned when the call fails or times out
        """
        future = self._executor.submit(fn, *args, **kwargs)
        try:
            return future.result(timeout=self.timeout_seconds)
        except concurrent.futures.TimeoutError:
            future.cancel()
            logger.warning(
                "side_channel_timed_out", side_channel=name, timeout_seconds=self.timeout_seconds
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "side_channel_failed",
                side_channel=name,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        return fallback

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
