"""Shared utilities for validation and normalization."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any

from .exceptions import ValidationError
from .models import ConnectorStatus, ConnectorType, StoredStatus

_CONNECTOR_KEY_RE = re.compile(r"[\s_\-./]")

_CONNECTOR_DIRECT = {_CONNECTOR_KEY_RE.sub("", member.value).upper(): member for member in ConnectorType}
_CONNECTOR_ALIASES = {
    "MENNEKES": ConnectorType.TYPE2,
    "J1772": ConnectorType.TYPE1,
    "NACS": ConnectorType.TESLA,
    "COMBO1": ConnectorType.CCS1,
    "COMBO2": ConnectorType.CCS2,
}

_CONNECTOR_STATUS_ALIASES = {
    "available": ConnectorStatus.AVAILABLE,
    "free": ConnectorStatus.AVAILABLE,
    "busy": ConnectorStatus.BUSY,
    "occupied": ConnectorStatus.BUSY,
    "unavailable": ConnectorStatus.BUSY,
    "charging": ConnectorStatus.BUSY,
    "offline": ConnectorStatus.OFFLINE,
    "maintenance": ConnectorStatus.MAINTENANCE,
    "out_of_service": ConnectorStatus.MAINTENANCE,
}

# Active and Expired are derived; a backend that persists them still only
# knows the booking was confirmed.
_STORED_STATUS_ALIASES = {
    "confirmed": StoredStatus.CONFIRMED,
    "active": StoredStatus.CONFIRMED,
    "expired": StoredStatus.CONFIRMED,
    "completed": StoredStatus.COMPLETED,
    "cancelled": StoredStatus.CANCELLED,
    "canceled": StoredStatus.CANCELLED,
}


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_aware(value: datetime, field: str = "timestamp") -> datetime:
    if not isinstance(value, datetime):
        raise ValidationError(f"{field} must be a datetime.")
    if value.tzinfo is None:
        raise ValidationError(f"{field} must include timezone information.")
    return value.astimezone(UTC)


def parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        return ensure_aware(value)
    if not isinstance(value, str) or not value:
        raise ValidationError("Timestamp must be a non-empty string.")
    raw = value.strip()
    if raw.endswith("Z"):
        raw = f"{raw[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError("Timestamp is not a valid ISO 8601 value.") from exc
    if parsed.tzinfo is None:
        raise ValidationError("Timestamp must include timezone information.")
    return parsed.astimezone(UTC)


def format_utc_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        raise ValidationError("Timestamp must include timezone information.")
    normalized = value.astimezone(UTC).replace(microsecond=0)
    return normalized.isoformat().replace("+00:00", "Z")


def mask_identifier(value: Any) -> str:
    if not isinstance(value, str) or not value:
        return "***"
    if len(value) <= 4:
        return "*" * len(value)
    return f"{value[:2]}{'*' * (len(value) - 4)}{value[-2:]}"


def normalize_connector_type(raw: Any) -> ConnectorType:
    if isinstance(raw, ConnectorType):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("Connector type must be a non-empty string.")
    key = _CONNECTOR_KEY_RE.sub("", raw).upper()
    if key in _CONNECTOR_DIRECT:
        return _CONNECTOR_DIRECT[key]
    if key in _CONNECTOR_ALIASES:
        return _CONNECTOR_ALIASES[key]
    if key.startswith("CCS2"):
        return ConnectorType.CCS2
    if key.startswith("CCS1"):
        return ConnectorType.CCS1
    if key.startswith("CCS"):
        return ConnectorType.CCS
    if "MENNEKES" in key:
        return ConnectorType.TYPE2
    if "J1772" in key:
        return ConnectorType.TYPE1
    if "GBT" in key:
        return ConnectorType.GB_T
    if "SCHUKO" in key:
        return ConnectorType.SCHUKO
    raise ValidationError(f"Unknown connector type: {raw!r}.")


def normalize_connector_status(raw: Any) -> ConnectorStatus:
    if isinstance(raw, ConnectorStatus):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("Connector status must be a non-empty string.")
    key = raw.strip().lower().replace(" ", "_").replace("-", "_")
    try:
        return _CONNECTOR_STATUS_ALIASES[key]
    except KeyError as exc:
        raise ValidationError(f"Unknown connector status: {raw!r}.") from exc


def normalize_stored_status(raw: Any) -> StoredStatus:
    if isinstance(raw, StoredStatus):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("Reservation status must be a non-empty string.")
    try:
        return _STORED_STATUS_ALIASES[raw.strip().lower()]
    except KeyError as exc:
        raise ValidationError(f"Unknown reservation status: {raw!r}.") from exc


def require_id(value: Any, field: str) -> str:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required.")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field} is required.")
    return text
