import pytest
from starlette.requests import Request
from structlog.testing import capture_logs

from app.backend.security import (
    AdminPolicy,
    RateLimiter,
    client_identity,
    redact_pii_simple,
    sanitize_for_logging,
)
from app.database.errors import Unauthorized
from tests.fakes import FakeClock


def _request(headers):
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "method": "POST", "path": "/", "headers": raw})


def test_rate_limiter_allows_twenty_then_blocks(clock):
    limiter = RateLimiter(limit=20, window_seconds=60, clock=clock)
    assert all(limiter.check("1.2.3.4") for _ in range(20))
    assert limiter.check("1.2.3.4") is False


def test_rate_limiter_recovers_after_window(clock):
    limiter = RateLimiter(limit=20, window_seconds=60, clock=clock)
    for _ in range(20):
        limiter.check("k")
    assert not limiter.check("k")

    clock.advance(60)
    assert limiter.check("k")


def test_rate_limiter_window_slides():
    clock = FakeClock()
    limiter = RateLimiter(limit=2, window_seconds=60, clock=clock)
    assert limiter.check("k")
    clock.advance(30)
    assert limiter.check("k")
    clock.advance(29)
    assert not limiter.check("k")
    clock.advance(1)
    # first hit has aged out, second is still inside the window
    assert limiter.check("k")
    assert not limiter.check("k")


def test_rejected_attempts_are_not_recorded(clock):
    limiter = RateLimiter(limit=1, window_seconds=10, clock=clock)
    assert limiter.check("k")
    for _ in range(5):
        clock.advance(1)
        assert not limiter.check("k")
    clock.advance(5)
    assert limiter.check("k")


def test_rate_limiter_keys_are_independent(clock):
    limiter = RateLimiter(limit=1, window_seconds=60, clock=clock)
    assert limiter.check("a")
    assert limiter.check("b")
    assert not limiter.check("a")


def test_usage_reports_remaining(clock):
    limiter = RateLimiter(limit=3, window_seconds=60, clock=clock)
    limiter.check("k")
    usage = limiter.usage("k")
    assert usage["usage"] == 1
    assert usage["remaining"] == 2
    assert limiter.usage("other")["usage"] == 0


@pytest.mark.parametrize(
    "headers,expected",
    [
        ({"X-Forwarded-For": "203.0.113.5, 10.0.0.1"}, "203.0.113.5"),
        ({"X-Forwarded-For": "203.0.113.5", "X-Real-IP": "10.0.0.9"}, "203.0.113.5"),
        ({"X-Real-IP": "10.0.0.9"}, "10.0.0.9"),
        ({}, "unknown"),
    ],
)
def test_client_identity(headers, expected):
    assert client_identity(_request(headers)) == expected


def test_disabled_policy_allows_anything():
    policy = AdminPolicy.disabled()
    assert not policy.is_enforced
    policy.authorize(None)
    policy.authorize("whatever")


def test_enforced_policy_checks_secret():
    policy = AdminPolicy.enforced("s3cret")
    assert policy.is_enforced
    policy.authorize("s3cret")
    with pytest.raises(Unauthorized):
        policy.authorize("wrong")
    with pytest.raises(Unauthorized):
        policy.authorize(None)


def test_enforced_policy_needs_a_secret():
    with pytest.raises(ValueError):
        AdminPolicy.enforced("")


def test_policy_from_env(monkeypatch):
    monkeypatch.delenv("ADMIN_SECRET", raising=False)
    assert not AdminPolicy.from_env().is_enforced

    monkeypatch.setenv("ADMIN_SECRET", "abc")
    policy = AdminPolicy.from_env()
    assert policy.is_enforced
    assert policy.secret == "abc"


def test_redaction_masks_contact_details():
    text = redact_pii_simple("reach jordan@example.com or 555-123-4567")
    assert "jordan@example.com" not in text
    assert "555-123-4567" not in text
    assert "[EMAIL_REDACTED]" in text
    assert "[PHONE_REDACTED]" in text


def test_sanitize_truncates_long_values():
    out = sanitize_for_logging({"notes": "x" * 1000}, max_length=50)
    assert out.endswith("... [truncated]")
    assert len(out) == 50 + len("... [truncated]")


def test_rejection_is_logged_with_usage(clock):
    limiter = RateLimiter(limit=1, window_seconds=60, clock=clock)
    limiter.check("203.0.113.5")
    with capture_logs() as logs:
        assert not limiter.check("203.0.113.5")

    event = next(e for e in logs if e["event"] == "rate_limited")
    assert event["usage"] == 1
    assert event["remaining"] == 0
    assert event["limit"] == 1
