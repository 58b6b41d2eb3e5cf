"""Clock-aligned window arithmetic.

Timestamps are integer milliseconds since the UNIX epoch; window sizes and
window epochs are integer seconds.
"""

from __future__ import annotations

import time

from windowlimiter.core.errors import InvalidArgumentError


def now_ms() -> int:
    return int(time.time() * 1000)


def validate_size(size_sec: int) -> int:
    if isinstance(size_sec, bool) or not isinstance(size_sec, int):
        raise InvalidArgumentError(
            f"window size must be an integer number of seconds, got {size_sec!r}"
        )
    if size_sec <= 0:
        raise InvalidArgumentError(f"window size must be positive, got {size_sec}")
    return size_sec


def current_epoch(now_ms: int, size_sec: int) -> int:
    validate_size(size_sec)
    return (now_ms // 1000 // size_sec) * size_sec


def previous_epoch(now_ms: int, size_sec: int) -> int:
    return current_epoch(now_ms, size_sec) - size_sec


def window_reset_at(now_ms: int, size_sec: int) -> int:
    """Second at which the current window closes."""
    return current_epoch(now_ms, size_sec) + size_sec


def weight(now_ms: int, size_sec: int) -> float:
    """Fraction of the current window still remaining, in ``[0, 1]``.

    1.0 at the instant the window opens, approaching 0.0 as it closes.
    """
    end_ms = window_reset_at(now_ms, size_sec) * 1000
    return (end_ms - now_ms) / (size_sec * 1000)
