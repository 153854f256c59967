"""Security utilities: intake rate limiting, admin capability policy, PII redaction, audit logging."""
import hmac
import json
import os
import re
import time
from typing import Any, Callable, Dict, List, Optional

import structlog
from fastapi import Request

from app.database.errors import Unauthorized

log = structlog.get_logger()


# --- PII Redaction (Simple Pattern-Based) ---

PII_PATTERNS = {
    "email": r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b",
    "phone": r"\b(\+\d{1,2}\s?)?(\d{3}[-.\s]??\d{3}[-.\s]??\d{4}|\(\d{3}\)\s*\d{3}[-.\s]??\d{4})\b",
}


def redact_pii_simple(text: str) -> str:
    redacted = text
    for pii_type, pattern in PII_PATTERNS.items():
        redacted = re.sub(pattern, f"[{pii_type.upper()}_REDACTED]", redacted, flags=re.IGNORECASE)
    return redacted


def sanitize_for_logging(data: Any, max_length: int = 500) -> str:
    """Sanitize data for safe logging (redact PII, truncate)."""
    text = data if isinstance(data, str) else json.dumps(data, default=str)
    redacted = redact_pii_simple(text)
    if len(redacted) > max_length:
        redacted = redacted[:max_length] + "... [truncated]"
    return redacted


# --- Audit Logging ---

audit_log = structlog.get_logger("audit")


def log_audit_event(
    event_type: str,
    submission_id: Optional[str] = None,
    client_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Emit a structured audit record.

    Args:
        event_type: Type of event (e.g., 'submission_created', 'submission_updated')
        submission_id: Submission identifier
        client_id: Caller identity (forwarded address), redacted before logging
        metadata: Additional metadata
    """
    audit_log.info(
        "audit",
        event_type=event_type,
        submission_id=submission_id,
        client_id=sanitize_for_logging(client_id) if client_id else None,
        metadata=metadata or {},
    )


# --- Rate Limiting ---

SUBMIT_RATE_LIMIT = int(os.getenv("SUBMIT_RATE_LIMIT", "20"))
SUBMIT_RATE_WINDOW_SECONDS = float(os.getenv("SUBMIT_RATE_WINDOW_SECONDS", "60"))


class RateLimiter:
    """Sliding-window counter keyed by client identity.

    One instance per process. Not locked: concurrent handlers may let a
    request or two through on either side of the limit.
    """

    def __init__(
        self,
        limit: int = SUBMIT_RATE_LIMIT,
        window_seconds: float = SUBMIT_RATE_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock
        self._hits: Dict[str, List[float]] = {}

    def _recent(self, key: str, now: float) -> List[float]:
        return [t for t in self._hits.get(key, []) if now - t < self.window_seconds]

    def check(self, key: str) -> bool:
        """
        Record an attempt for ``key``.

        Returns:
            True if within the limit, False if exceeded (the attempt is not recorded)
        """
        now = self.clock()
        recent = self._recent(key, now)
        if len(recent) >= self.limit:
            self._hits[key] = recent
            log.warning("rate_limited", client_id=sanitize_for_logging(key), **self.usage(key))
            return False
        recent.append(now)
        self._hits[key] = recent
        return True

    def usage(self, key: str) -> Dict[str, Any]:
        used = len(self._recent(key, self.clock()))
        return {
            "usage": used,
            "limit": self.limit,
            "remaining": max(0, self.limit - used),
            "window_seconds": self.window_seconds,
        }


def client_identity(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded and forwarded.split(",")[0].strip():
        return forwarded.split(",")[0].strip()
    real = request.headers.get("x-real-ip")
    if real:
        return real.strip()
    return "unknown"


# --- Admin capability check ---

ADMIN_KEY_HEADER = "X-Admin-Key"


class AdminPolicy:
    """Admin gate chosen once at startup: enforced with a shared secret, or disabled."""

    def __init__(self, secret: Optional[str] = None) -> None:
        self.secret = secret or None

    @classmethod
    def enforced(cls, secret: str) -> "AdminPolicy":
        if not secret:
            raise ValueError("An enforced admin policy needs a non-empty secret")
        return cls(secret)

    @classmethod
    def disabled(cls) -> "AdminPolicy":
        return cls(None)

    @classmethod
    def from_env(cls) -> "AdminPolicy":
        secret = os.getenv("ADMIN_SECRET")
        if not secret:
            log.warning("admin_auth_disabled", reason="ADMIN_SECRET not set")
            return cls.disabled()
        return cls.enforced(secret)

    @property
    def is_enforced(self) -> bool:
        return self.secret is not None

    def authorize(self, presented: Optional[str]) -> None:
        if not self.is_enforced:
            return
        if presented is None or not hmac.compare_digest(presented.encode(), self.secret.encode()):
            log.warning("unauthorized_admin_request")
            raise Unauthorized()
