import pytest

from windowlimiter.core.errors import InvalidArgumentError
from windowlimiter.rl.keys import build_key, namespace_for


def test_build_key_layout():
    assert build_key("rate-limit", "test", "user1", 1700000000) == (
        "rate-limit:test:user1:1700000000"
    )
    assert build_key("rate-limit", "test", "user1") == "rate-limit:test:user1"


def test_build_key_is_deterministic():
    a = build_key("ns", "GET/orders", "user-1", 60)
    b = build_key("ns", "GET/orders", "user-1", 60)
    assert a == b


def test_namespace_for_algorithms():
    assert namespace_for("rate-limit", "fixed_window") == "rate-limit:fw"
    assert namespace_for("rate-limit", "sliding_log") == "rate-limit:sl"
    assert namespace_for("rate-limit", "sliding_window") == "rate-limit:sw"
    with pytest.raises(InvalidArgumentError):
        namespace_for("rate-limit", "token_bucket")


@pytest.mark.parametrize(
    "resource,subject",
    [("GET:/r", "u1"), ("r", "u:1"), ("", "u1"), ("r", "")],
)
def test_build_key_rejects_delimiter_and_empty(resource, subject):
    with pytest.raises(InvalidArgumentError):
        build_key("ns", resource, subject)


def test_delimiter_rejection_prevents_collisions():
    # "a:b" + "c" and "a" + "b:c" would otherwise both be ns:a:b:c
    with pytest.raises(InvalidArgumentError):
        build_key("ns", "a:b", "c")
    with pytest.raises(InvalidArgumentError):
        build_key("ns", "a", "b:c")


def test_build_key_requires_namespace():
    with pytest.raises(InvalidArgumentError):
        build_key("", "r", "s")
