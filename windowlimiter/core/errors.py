"""Error types surfaced by the limiters.

Callers distinguish the three kinds below to pick their own fail-open or
fail-closed policy; nothing here is recovered internally.
"""

from __future__ import annotations


class RateLimitError(Exception):
    """Base error for limiter failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
    """

    code = "rate_limit_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgumentError(RateLimitError, ValueError):
    """Raised before any store call for bad window sizes or identifiers."""

    code = "invalid_argument"


class StoreCommunicationError(RateLimitError):
    """Raised when the counting store cannot be reached or rejects a batch.

    The underlying redis exception is kept as ``__cause__``.
    """

    code = "store_unavailable"


class UnexpectedReplyError(RateLimitError):
    """Raised when a batch reply has the wrong number or type of results."""

    code = "unexpected_reply"
