"""
tekron.errors - Domain Error Taxonomy
======================================

Services raise these; :mod:`tekron.api.main` maps every subclass of
:class:`TekronError` to a stable HTTP status with one exception handler.
"""

from __future__ import annotations


class TekronError(Exception):
    """Base class for all recoverable domain errors."""

    status_code: int = 500
    code: str = "error"

    def __init__(self, detail: str, *, fields: dict[str, str] | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.fields = fields or {}

    def to_dict(self) -> dict:
        body: dict = {"error": self.code, "detail": self.detail}
        if self.fields:
            body["fields"] = self.fields
        return body


class ValidationError(TekronError):
    """Missing or malformed input."""
    status_code = 422
    code = "validation_error"


class Unauthorized(TekronError):
    """Missing, invalid, expired or revoked credential."""
    status_code = 401
    code = "unauthorized"


class Forbidden(TekronError):
    """Valid credential, but wrong role, approval state or ownership."""
    status_code = 403
    code = "forbidden"


class NotFound(TekronError):
    status_code = 404
    code = "not_found"


class Conflict(TekronError):
    """Uniqueness violation (duplicate email, duplicate feedback, ...)."""
    status_code = 409
    code = "conflict"


class InvalidTransition(Conflict):
    """A state machine rejected the requested transition."""
    code = "invalid_transition"
