"""Error types raised by the submission store and its HTTP gateways."""
from typing import Iterable, Optional


class SubmissionError(Exception):
    """Base error. Carries the HTTP status and a message safe to show the caller."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class IntakeValidationError(SubmissionError):
    status_code = 400

    def __init__(self, field: str, message: Optional[str] = None) -> None:
        super().__init__(message or f'Field "{field}" is required.')
        self.field = field


class SubmissionNotFound(SubmissionError):
    status_code = 404

    def __init__(self, sub_id: str) -> None:
        super().__init__("Submission not found")
        self.sub_id = sub_id


class InvalidTransition(SubmissionError):
    status_code = 400

    def __init__(self, current: str, target: str, allowed: Iterable[str]) -> None:
        self.current = current
        self.target = target
        self.allowed = list(allowed)
        allowed_text = ", ".join(self.allowed) if self.allowed else "none"
        super().__init__(
            f'Invalid status transition from "{current}" to "{target}". Allowed: {allowed_text}.'
        )


class RateLimited(SubmissionError):
    status_code = 429

    def __init__(self, message: str = "Too many submissions. Try again later.") -> None:
        super().__init__(message)


class Unauthorized(SubmissionError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class BackendError(SubmissionError):
    """Failure talking to the spreadsheet backend, or the backend is misconfigured."""

    status_code = 502
