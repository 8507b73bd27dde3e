"""
Timing utilities for performance measurement and bounded waits.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional, TypeVar

from ..exceptions import ExtractionTimeoutError


T = TypeVar("T")


@dataclass
class TimingResult:
    """Result of a timed operation."""
    name: str
    duration_sec: float
    success: bool = True
    error: Optional[str] = None

    @property
    def duration_ms(self) -> float:
        return self.duration_sec * 1000

    def __str__(self) -> str:
        return f"{self.name}: {format_duration(self.duration_sec)}"


@contextmanager
def timed_operation(
    name: str,
    logger: Optional[logging.Logger] = None,
    log_level: int = logging.DEBUG
) -> Iterator[TimingResult]:
    """
    Context manager for timing operations.

    Usage:
        with timed_operation("vision backend", logger) as timing:
            # do work
        print(f"Took {timing.duration_sec:.2f}s")

    Args:
        name: Name of the operation (for logging)
        logger: Optional logger to log timing
        log_level: Log level for timing message

    Yields:
        TimingResult that will be populated on exit
    """
    result = TimingResult(name=name, duration_sec=0.0)
    start = time.perf_counter()

    try:
        yield result
        result.success = True
    except Exception as e:
        result.success = False
        result.error = str(e)
        raise
    finally:
        result.duration_sec = time.perf_counter() - start

        if logger:
            msg = str(result)
            if not result.success:
                msg += f" (failed: {result.error})"
            logger.log(log_level, msg)


class Timer:
    """
    Accumulating timer for tracking multiple operations.

    Usage:
        timer = Timer()

        timer.start("vision")
        # do work
        timer.stop("vision")

        print(timer.summary())
    """

    def __init__(self):
        self._starts: dict[str, float] = {}
        self._totals: dict[str, float] = {}
        self._counts: dict[str, int] = {}
        self._global_start: float = time.perf_counter()

    def start(self, name: str) -> None:
        """Start timing an operation."""
        self._starts[name] = time.perf_counter()

    def stop(self, name: str) -> float:
        """
        Stop timing an operation.

        Returns:
            Duration in seconds
        """
        if name not in self._starts:
            return 0.0

        duration = time.perf_counter() - self._starts.pop(name)
        self._totals[name] = self._totals.get(name, 0.0) + duration
        self._counts[name] = self._counts.get(name, 0) + 1
        return duration

    @property
    def elapsed(self) -> float:
        """Get total elapsed time since timer creation."""
        return time.perf_counter() - self._global_start

    def summary(self) -> str:
        """Generate summary of all timed operations."""
        lines = ["Timing Summary:"]
        for name in sorted(self._totals):
            lines.append(f"  {name}: {format_duration(self._totals[name])} ({self._counts[name]}x)")
        lines.append(f"  Total elapsed: {self.elapsed:.2f}s")
        return "\n".join(lines)


def run_with_timeout(
    func: Callable[..., T],
    timeout_sec: Optional[float],
    backend: str,
    *args: Any,
    **kwargs: Any,
) -> T:
    """
    Run func in a single worker thread and wait at most timeout_sec.

    The worker is abandoned (not cancelled) on timeout; the call returns
    immediately and the thread finishes in the background.

    Raises:
        ExtractionTimeoutError: If func did not return in time
    """
    if not timeout_sec or timeout_sec <= 0:
        return func(*args, **kwargs)

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{backend}-call")
    try:
        future = executor.submit(func, *args, **kwargs)
        try:
            return future.result(timeout=timeout_sec)
        except FutureTimeoutError:
            future.cancel()
            raise ExtractionTimeoutError(backend, timeout_sec) from None
    finally:
        executor.shutdown(wait=False)


def format_duration(seconds: float) -> str:
    """
    Format duration in human-readable form.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string
    """
    if seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    elif seconds < 60:
        return f"{seconds:.2f}s"
    minutes = int(seconds // 60)
    secs = seconds % 60
    return f"{minutes}m {secs:.1f}s"
