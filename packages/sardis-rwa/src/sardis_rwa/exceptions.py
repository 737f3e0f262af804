"""Exception hierarchy for real-world asset registration.

All registration errors inherit from RWAException, mirroring the Sardis core
hierarchy:
- error_code: Machine-readable error code (e.g., "INVALID_REQUEST")
- message: Human-readable error message
- details: Optional additional context dictionary
- to_dict(): Convert to a response-friendly dictionary

Usage:
    from sardis_rwa.exceptions import InvalidRequestError, RegistrationFailedError

    try:
        summary = await adapter.handle(raw_payload)
    except RegistrationFailedError as e:
        if isinstance(e.cause, InvalidRequestError):
            ...
"""
from __future__ import annotations

from typing import Any, Optional, Type


REGISTRATION_FAILURE_PREFIX = "Failed to process watch registration: "


class RWAException(Exception):
    """Base exception for all registration errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        details: Optional additional context
    """

    error_code: str = "RWA_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to response format."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Registration taxonomy
# =============================================================================

class InvalidRequestError(RWAException):
    """Empty, unparseable or schema-violating inbound payload."""

    error_code = "INVALID_REQUEST"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details=details)


class AppraisalRejectedError(RWAException):
    """Authenticity check returned a negative verdict."""

    error_code = "APPRAISAL_REJECTED"

    def __init__(
        self,
        serial: str,
        reason: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        details["serial"] = serial
        message = f"Appraisal validation failed for serial: {serial}"
        if reason:
            details["reason"] = reason
            message = f"{message} ({reason})"
        self.serial = serial
        self.reason = reason
        super().__init__(message, details=details)


class EncodingError(RWAException):
    """Record could not be ABI-encoded (overflow or malformed field)."""

    error_code = "ENCODING_ERROR"


class AttestationError(RWAException):
    """The attestation collaborator failed to produce signatures."""

    error_code = "ATTESTATION_ERROR"


class SubmissionFailedError(RWAException):
    """Ledger submission returned a non-success status or the transport failed."""

    error_code = "SUBMISSION_FAILED"

    def __init__(
        self,
        message: str,
        status: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        if status:
            details["status"] = status
        self.status = status
        super().__init__(message, details=details)


# =============================================================================
# Bootstrap errors
# =============================================================================

class ConfigurationError(RWAException):
    """Workflow configuration is missing or invalid."""

    error_code = "CONFIGURATION_ERROR"


class NetworkNotFoundError(ConfigurationError):
    """Chain selector name does not resolve to a known network."""

    error_code = "NETWORK_NOT_FOUND"

    def __init__(self, chain_selector_name: str) -> None:
        super().__init__(
            f"Network not found for chain selector name: {chain_selector_name}",
            details={"chain_selector_name": chain_selector_name},
        )


# =============================================================================
# Caller-facing failure
# =============================================================================

class RegistrationFailedError(RWAException):
    """The single failure value handed back to the trigger caller.

    Wraps the underlying taxonomy error; `error_code` is taken from the cause
    so callers can branch without parsing the message.
    """

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        cause_message = getattr(cause, "message", None) or str(cause)
        error_code = getattr(cause, "error_code", None) or "RWA_ERROR"
        details = dict(getattr(cause, "details", {}) or {})
        super().__init__(
            f"{REGISTRATION_FAILURE_PREFIX}{cause_message}",
            error_code=error_code,
            details=details,
        )

    @property
    def kind(self) -> str:
        return self.error_code


_EXCEPTION_REGISTRY: dict[str, Type[RWAException]] = {
    cls.error_code: cls
    for cls in (
        RWAException,
        InvalidRequestError,
        AppraisalRejectedError,
        EncodingError,
        AttestationError,
        SubmissionFailedError,
        ConfigurationError,
        NetworkNotFoundError,
    )
}


def get_exception_class(error_code: str) -> Type[RWAException]:
    """Get the exception class for an error code.

    Unknown codes map to the base RWAException.
    """
    return _EXCEPTION_REGISTRY.get(error_code, RWAException)


__all__ = [
    "REGISTRATION_FAILURE_PREFIX",
    "RWAException",
    "InvalidRequestError",
    "AppraisalRejectedError",
    "EncodingError",
    "AttestationError",
    "SubmissionFailedError",
    "ConfigurationError",
    "NetworkNotFoundError",
    "RegistrationFailedError",
    "get_exception_class",
]
