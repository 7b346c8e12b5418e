from datetime import UTC, datetime, timedelta, timezone

import pytest

from pyevcharging.exceptions import ValidationError
from pyevcharging.models import ConnectorStatus, ConnectorType, StoredStatus
from pyevcharging.util import (
    ensure_aware,
    format_utc_timestamp,
    mask_identifier,
    normalize_connector_status,
    normalize_connector_type,
    normalize_stored_status,
    parse_timestamp,
    require_id,
)


def test_format_utc_timestamp_converts_offset() -> None:
    dt = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert format_utc_timestamp(dt) == "2024-01-01T10:00:00Z"


def test_parse_timestamp() -> None:
    assert parse_timestamp("2024-01-01T12:00:00.000Z") == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    assert parse_timestamp("2024-01-01T12:00:00+02:00") == datetime(2024, 1, 1, 10, 0, tzinfo=UTC)


@pytest.mark.parametrize("value", ["", "not a date", "2024-01-01T12:00:00", None])
def test_parse_timestamp_invalid(value) -> None:
    with pytest.raises(ValidationError):
        parse_timestamp(value)


def test_ensure_aware_rejects_naive() -> None:
    with pytest.raises(ValidationError):
        ensure_aware(datetime(2024, 1, 1, 12, 0))


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Type 2", ConnectorType.TYPE2),
        ("MENNEKES", ConnectorType.TYPE2),
        ("J1772", ConnectorType.TYPE1),
        ("chademo", ConnectorType.CHADEMO),
        ("GB/T", ConnectorType.GB_T),
        ("GB_T", ConnectorType.GB_T),
        ("CCS2 Combo", ConnectorType.CCS2),
        ("ccs", ConnectorType.CCS),
        ("NACS", ConnectorType.TESLA),
        ("Tesla", ConnectorType.TESLA),
    ],
)
def test_normalize_connector_type(raw: str, expected: ConnectorType) -> None:
    assert normalize_connector_type(raw) is expected


def test_normalize_connector_type_unknown() -> None:
    with pytest.raises(ValidationError):
        normalize_connector_type("Lightning")


def test_normalize_connector_status() -> None:
    assert normalize_connector_status("available") is ConnectorStatus.AVAILABLE
    assert normalize_connector_status("Unavailable") is ConnectorStatus.BUSY
    assert normalize_connector_status("Out of service") is ConnectorStatus.MAINTENANCE
    with pytest.raises(ValidationError):
        normalize_connector_status("melted")


def test_normalize_stored_status() -> None:
    assert normalize_stored_status("Cancelled") is StoredStatus.CANCELLED
    assert normalize_stored_status("completed") is StoredStatus.COMPLETED
    assert normalize_stored_status("Active") is StoredStatus.CONFIRMED
    with pytest.raises(ValidationError):
        normalize_stored_status("Pending")


def test_mask_identifier() -> None:
    assert mask_identifier("user-12345") == "us******45"
    assert mask_identifier("abc") == "***"
    assert mask_identifier(None) == "***"


def test_require_id() -> None:
    assert require_id(42, "id") == "42"
    with pytest.raises(ValidationError):
        require_id("  ", "id")
