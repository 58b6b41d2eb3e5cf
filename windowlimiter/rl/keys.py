from __future__ import annotations

from windowlimiter.core.errors import InvalidArgumentError

DELIMITER = ":"

# Short tags keep the three algorithms' counters apart under one prefix
ALGORITHM_TAGS = {
    "fixed_window": "fw",
    "sliding_log": "sl",
    "sliding_window": "sw",
}


def _check_segment(field: str, value: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidArgumentError(f"{field} must be a non-empty string")
    if DELIMITER in value:
        raise InvalidArgumentError(
            f"{field} must not contain {DELIMITER!r}: {value!r}"
        )
    return value


def namespace_for(prefix: str, algorithm: str) -> str:
    try:
        tag = ALGORITHM_TAGS[algorithm]
    except KeyError:
        raise InvalidArgumentError(f"unknown algorithm: {algorithm!r}") from None
    return f"{prefix}{DELIMITER}{tag}"


def build_key(
    namespace: str, resource: str, subject: str, epoch: int | None = None
) -> str:
    """Build ``namespace:resource:subject[:epoch]``.

    Resource and subject identifiers containing the delimiter are rejected so
    that two different pairs can never map onto the same key.
    """
    if not namespace:
        raise InvalidArgumentError("namespace must be a non-empty string")
    parts = [
        namespace,
        _check_segment("resource", resource),
        _check_segment("subject", subject),
    ]
    if epoch is not None:
        parts.append(str(int(epoch)))
    return DELIMITER.join(parts)
