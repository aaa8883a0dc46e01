"""Poll-until-condition with capped exponential backoff, and plain retry.

The timeout is checked against wall time before each call to ``fn``; a call
that hangs is not interrupted, so the total can overshoot ``timeout_ms``.
"""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")


class PollTimeoutError(RuntimeError):
    def __init__(self, elapsed_ms: float, polls: int) -> None:
        super().__init__(f"Timeout after {format_duration(elapsed_ms)}")
        self.elapsed_ms = elapsed_ms
        self.polls = polls


@dataclass(frozen=True)
class PollResult(Generic[T]):
    result: T
    elapsed_ms: float
    polls: int


def format_duration(ms: float) -> str:
    seconds = int(ms // 1000)
    minutes = seconds // 60
    hours = minutes // 60
    if hours > 0:
        return f"{hours}h {minutes % 60}m {seconds % 60}s"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def next_interval(current_ms: float, backoff: float, max_interval_ms: float) -> float:
    return min(current_ms * backoff, max_interval_ms)


def poll(
    fn: Callable[[], T],
    condition: Callable[[T], bool],
    *,
    interval_ms: float = 5000,
    timeout_ms: float = 300000,
    backoff: float = 1.5,
    max_interval_ms: float = 60000,
    on_poll: Callable[[T, float, int], Any] | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> PollResult[T]:
    started = clock()
    current = min(interval_ms, max_interval_ms)
    polls = 0
    while True:
        elapsed_ms = (clock() - started) * 1000.0
        if elapsed_ms >= timeout_ms:
            raise PollTimeoutError(elapsed_ms, polls)
        polls += 1
        result = fn()
        if on_poll is not None:
            on_poll(result, elapsed_ms, polls)
        if condition(result):
            return PollResult(result=result, elapsed_ms=elapsed_ms, polls=polls)
        sleep(current / 1000.0)
        current = next_interval(current, backoff, max_interval_ms)


def poll_until_changed(fn: Callable[[], T], initial: T, **options: Any) -> PollResult[T]:
    return poll(fn, lambda value: value != initial, **options)


def retry(
    fn: Callable[[], T],
    *,
    retries: int = 3,
    delay_ms: float = 1000,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``fn`` up to ``retries + 1`` times with a fixed delay; re-raise the last error."""
    attempt = 0
    while True:
        try:
            return fn()
        except Exception:
            if attempt >= retries:
                raise
            attempt += 1
            sleep(delay_ms / 1000.0)
