"""Typed error hierarchy shared by the service layer and the HTTP surface.

Services raise these exceptions; ``kocmoc.api.error_handlers`` turns them into
JSON responses. Authorization and validation failures are always raised to the
caller, never logged and dropped.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class KocmocError(Exception):
    """Base exception for all domain failures."""

    code: str = "internal"
    http_status: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict[str, Any]:
        """Return the JSON body sent to clients."""
        return {"detail": self.message, "code": self.code}


class InvalidArgumentError(KocmocError):
    """Malformed or missing required input."""

    code = "invalid_argument"
    http_status = 400


class ForbiddenError(KocmocError):
    """Caller is authenticated but not allowed to touch the target resource."""

    code = "forbidden"
    http_status = 403


class NotFoundError(KocmocError):
    """Referenced entity does not exist."""

    code = "not_found"
    http_status = 404


class ConflictError(KocmocError):
    """Request conflicts with stored state, such as a duplicate membership."""

    code = "conflict"
    http_status = 409


class ExpiredError(KocmocError):
    """Verification code whose expiry has passed."""

    code = "expired"
    http_status = 410


class AlreadyUsedError(KocmocError):
    """Verification code that has already been redeemed."""

    code = "already_used"
    http_status = 409


class AuthFailure(str, Enum):
    """Reason a bearer token or credential pair was rejected."""

    MISSING = "missing"
    EXPIRED = "expired"
    MALFORMED = "malformed"
    REVOKED = "revoked"
    UNKNOWN = "unknown"
    INVALID_CREDENTIALS = "invalid_credentials"


class UnauthenticatedError(KocmocError):
    """Missing, invalid, expired or revoked authentication."""

    code = "unauthenticated"
    http_status = 401

    def __init__(self, message: str, reason: AuthFailure) -> None:
        super().__init__(message)
        self.reason = reason

    def to_response(self) -> dict[str, Any]:
        body = super().to_response()
        body["reason"] = self.reason.value
        return body


class TransientError(KocmocError):
    """Store timeout or similar fault that is safe to retry for idempotent calls."""

    code = "transient"
    http_status = 503


class DeliveryError(TransientError):
    """The email collaborator failed to deliver a message."""

    code = "delivery_failed"
