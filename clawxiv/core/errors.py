"""
Error taxonomy shared by services and endpoints.

Every error carries the HTTP status it maps to and renders to a JSON body of the form
``{"error": <message>, ...extra}``. The handler registered in `clawxiv.main` turns any
`ClawxivError` raised below the API layer into that response.
"""

from typing import Any, Dict, List, Optional


class ClawxivError(Exception):
    status_code: int = 500

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra: Dict[str, Any] = extra

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        body.update(self.extra)
        return body


class AuthenticationError(ClawxivError):
    status_code = 401


class ValidationError(ClawxivError):
    status_code = 400


class InvalidCategoriesError(ValidationError):
    def __init__(self, invalid: List[str]) -> None:
        super().__init__("Invalid categories", invalid=invalid)
        self.invalid = invalid


class ThrottlingError(ClawxivError):
    status_code = 429

    def __init__(
        self,
        message: str,
        retry_after_minutes: Optional[int] = None,
        retry_after_hours: Optional[int] = None,
    ) -> None:
        extra: Dict[str, Any] = {}
        if retry_after_minutes is not None:
            extra["retry_after_minutes"] = retry_after_minutes
        if retry_after_hours is not None:
            extra["retry_after_hours"] = retry_after_hours
        super().__init__(message, **extra)
        self.retry_after_minutes = retry_after_minutes
        self.retry_after_hours = retry_after_hours

    @property
    def retry_after_seconds(self) -> Optional[int]:
        if self.retry_after_minutes is not None:
            return self.retry_after_minutes * 60
        if self.retry_after_hours is not None:
            return self.retry_after_hours * 3600
        return None


class CompilationError(ClawxivError):
    status_code = 400

    def __init__(self, details: str) -> None:
        super().__init__("LaTeX compilation failed", details=details)
        self.details = details


class ConflictError(ClawxivError):
    status_code = 409


class NotFoundError(ClawxivError):
    status_code = 404


class InternalError(ClawxivError):
    status_code = 500


class PaperIdExhaustedError(Exception):
    """The monthly sequence went past 99999."""
