from datetime import UTC, datetime, timedelta

import pytest

from pyevcharging.exceptions import (
    ConnectorUnavailableError,
    DurationTooShortError,
    IncompatibleConnectorError,
    StartInPastError,
    ValidationError,
)
from pyevcharging.models import (
    Connector,
    ConnectorStatus,
    ConnectorType,
    Reservation,
    ReservationRequest,
    SchedulingPolicy,
    Station,
    StoredStatus,
    VehicleProfile,
)
from pyevcharging.validator import find_local_conflict, validate_request

NOW = datetime(2026, 1, 2, 10, 0, tzinfo=UTC)

STATION = Station(
    id="s1",
    connectors=(
        Connector(id="c1", type=ConnectorType.CCS2, rated_power_kw=150.0),
        Connector(id="c2", type=ConnectorType.CHADEMO, rated_power_kw=50.0),
        Connector(id="c3", type=ConnectorType.CCS2, rated_power_kw=150.0, status=ConnectorStatus.OFFLINE),
        Connector(id="c4", type=ConnectorType.TYPE2, rated_power_kw=22.0, status=ConnectorStatus.MAINTENANCE),
        Connector(id="c5", type=ConnectorType.TYPE2, rated_power_kw=22.0, status=ConnectorStatus.BUSY),
    ),
)

VEHICLE = VehicleProfile(
    battery_capacity_kwh=60.0,
    current_soc_percent=20.0,
    target_soc_percent=80.0,
    primary_connector=ConnectorType.CCS2,
    adapters=frozenset({ConnectorType.TYPE2}),
)


def _request(
    *,
    start: timedelta = timedelta(minutes=10),
    length: timedelta = timedelta(minutes=30),
    connector_id: str = "c1",
    station_id: str = "s1",
) -> ReservationRequest:
    return ReservationRequest(
        user_id="user-1",
        vehicle_id="car-1",
        station_id=station_id,
        connector_id=connector_id,
        requested_start=NOW + start,
        requested_end=NOW + start + length,
    )


def test_validate_request_returns_connector() -> None:
    connector = validate_request(_request(), STATION, VEHICLE, NOW)
    assert connector.id == "c1"


def test_validate_request_accepts_minimum_duration() -> None:
    validate_request(_request(length=timedelta(minutes=5)), STATION, VEHICLE, NOW)


def test_validate_request_rejects_short_duration() -> None:
    with pytest.raises(DurationTooShortError):
        validate_request(_request(length=timedelta(minutes=4, seconds=59)), STATION, VEHICLE, NOW)


def test_validate_request_rejects_inverted_window() -> None:
    with pytest.raises(DurationTooShortError):
        validate_request(_request(length=timedelta(minutes=-30)), STATION, VEHICLE, NOW)


def test_validate_request_allows_clock_skew() -> None:
    validate_request(_request(start=timedelta(seconds=-60)), STATION, VEHICLE, NOW)


def test_validate_request_rejects_start_in_past() -> None:
    with pytest.raises(StartInPastError):
        validate_request(_request(start=timedelta(seconds=-61)), STATION, VEHICLE, NOW)


def test_validate_request_rejects_unknown_connector() -> None:
    with pytest.raises(ConnectorUnavailableError):
        validate_request(_request(connector_id="missing"), STATION, VEHICLE, NOW)


def test_validate_request_rejects_connector_of_other_station() -> None:
    with pytest.raises(ConnectorUnavailableError):
        validate_request(_request(station_id="s2"), STATION, VEHICLE, NOW)


@pytest.mark.parametrize("connector_id", ["c3", "c4"])
def test_validate_request_rejects_unbookable_connector(connector_id: str) -> None:
    with pytest.raises(ConnectorUnavailableError):
        validate_request(_request(connector_id=connector_id), STATION, VEHICLE, NOW)


def test_validate_request_allows_busy_connector() -> None:
    validate_request(_request(connector_id="c5"), STATION, VEHICLE, NOW)


def test_validate_request_rejects_incompatible_connector() -> None:
    with pytest.raises(IncompatibleConnectorError):
        validate_request(_request(connector_id="c2"), STATION, VEHICLE, NOW)


def test_validate_request_first_failure_wins() -> None:
    request = _request(start=timedelta(hours=-1), length=timedelta(minutes=1), connector_id="c2")
    with pytest.raises(DurationTooShortError):
        validate_request(request, STATION, VEHICLE, NOW)


def test_validate_request_rejects_naive_datetime() -> None:
    request = ReservationRequest(
        user_id="user-1",
        vehicle_id="car-1",
        station_id="s1",
        connector_id="c1",
        requested_start=datetime(2026, 1, 2, 11, 0),
        requested_end=datetime(2026, 1, 2, 12, 0),
    )
    with pytest.raises(ValidationError):
        validate_request(request, STATION, VEHICLE, NOW)


def test_validate_request_honours_policy() -> None:
    policy = SchedulingPolicy(min_duration=timedelta(minutes=15))
    with pytest.raises(DurationTooShortError):
        validate_request(_request(length=timedelta(minutes=10)), STATION, VEHICLE, NOW, policy=policy)


def test_find_local_conflict() -> None:
    existing = Reservation(
        id="r1",
        station_id="s1",
        connector_id="c1",
        start_time=NOW + timedelta(minutes=30),
        end_time=NOW + timedelta(minutes=60),
        stored_status=StoredStatus.CONFIRMED,
    )
    cancelled = Reservation(
        id="r2",
        station_id="s1",
        connector_id="c1",
        start_time=NOW,
        end_time=NOW + timedelta(hours=2),
        stored_status=StoredStatus.CANCELLED,
    )
    assert find_local_conflict(_request(), [cancelled, existing], NOW) == existing
    assert find_local_conflict(_request(length=timedelta(minutes=20)), [existing], NOW) is None
    assert find_local_conflict(_request(connector_id="c5"), [existing], NOW) is None
