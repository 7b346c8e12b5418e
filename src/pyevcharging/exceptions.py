"""Library exceptions."""

from __future__ import annotations

from typing import Any


class PyEVChargingError(Exception):
    """Base exception for the library."""

    error_type = "unknown"
    default_error_code: str | None = None
    default_user_message: str | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        error_code: str | None = None,
        detail: str | None = None,
        user_message: str | None = None,
    ) -> None:
        text = message if message is not None else detail
        super().__init__(text or "")
        self.error_code = error_code or self.default_error_code
        self.detail = detail if detail is not None else text
        self.user_message = user_message or self.default_user_message


class ValidationError(PyEVChargingError):
    """Raised when inputs fail validation."""

    error_type = "validation"
    default_error_code = "validation_error"


class InvalidRangeError(ValidationError):
    """Raised when the target state of charge does not exceed the current one."""

    default_error_code = "invalid_range"
    default_user_message = "Target charge level must be above the current level."


class DurationTooShortError(ValidationError):
    """Raised when a requested slot is shorter than the minimum duration."""

    default_error_code = "duration_too_short"
    default_user_message = "The charging slot is too short."


class StartInPastError(ValidationError):
    """Raised when a requested slot starts in the past."""

    default_error_code = "start_in_past"
    default_user_message = "The start time is in the past."


class ConnectorUnavailableError(ValidationError):
    """Raised when a connector is unknown, offline or under maintenance."""

    default_error_code = "connector_unavailable"
    default_user_message = "This connector is not available for booking."


class IncompatibleConnectorError(ValidationError):
    """Raised when the vehicle cannot plug into the connector."""

    default_error_code = "incompatible_connector"
    default_user_message = "Your vehicle is not compatible with this connector."


class SlotConflictError(PyEVChargingError):
    """Raised when the requested slot overlaps an existing reservation."""

    error_type = "contention"
    default_error_code = "slot_conflict"
    default_user_message = "This slot was just taken, please choose another."

    def __init__(self, message: str | None = None, *, conflict: Any = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.conflict = conflict


class AlreadyFinalizedError(PyEVChargingError):
    """Raised when a reservation can no longer be cancelled."""

    error_type = "finalization"
    default_error_code = "already_finalized"
    default_user_message = "This reservation has already ended."

    def __init__(self, message: str | None = None, *, status: Any = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.status = status


class NetworkError(PyEVChargingError):
    """Raised when network communication fails."""

    error_type = "network"
    default_error_code = "network_error"
    default_user_message = "Network issue. Please try again."


class BackendTimeoutError(NetworkError):
    """Raised when a backend call exceeds its time budget."""

    default_error_code = "timeout"


class ServiceUnavailableError(NetworkError):
    """Raised when the backend answers with a server error."""

    default_error_code = "service_unavailable"


class AuthError(PyEVChargingError):
    """Raised when the backend rejects the caller's credentials."""

    error_type = "auth"
    default_error_code = "auth_error"


class NotFoundError(PyEVChargingError):
    """Raised when a requested record does not exist."""

    error_type = "not_found"
    default_error_code = "not_found"


class BackendError(PyEVChargingError):
    """Raised when the backend returns an error or malformed data."""

    error_type = "backend"
    default_error_code = "backend_error"


class ConfigError(PyEVChargingError):
    """Raised when the library is misconfigured."""

    error_type = "config"
    default_error_code = "config_error"
