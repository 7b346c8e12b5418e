"""Local pre-check of a requested charging slot.

The checks here fail fast before a request reaches the backend. They are
advisory: only the backend's arbitration can guarantee that no two
bookings share a connector, so a request that passes may still be
rejected with a slot conflict on submission.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from .exceptions import (
    ConnectorUnavailableError,
    DurationTooShortError,
    IncompatibleConnectorError,
    StartInPastError,
)
from .models import (
    Connector,
    Reservation,
    ReservationRequest,
    ReservationStatus,
    SchedulingPolicy,
    Station,
    VehicleProfile,
)
from .state import derive_status
from .util import ensure_aware

_DEFAULT_POLICY = SchedulingPolicy()


def validate_request(
    request: ReservationRequest,
    station: Station,
    vehicle: VehicleProfile,
    now: datetime,
    *,
    policy: SchedulingPolicy | None = None,
) -> Connector:
    """Check ``request`` and return the connector it targets.

    Checks run in a fixed order and the first failure is raised: duration,
    start time, connector availability, then plug compatibility.
    """
    policy = policy or _DEFAULT_POLICY
    start = ensure_aware(request.requested_start, "requested_start")
    end = ensure_aware(request.requested_end, "requested_end")
    now = ensure_aware(now, "now")

    if end - start < policy.min_duration:
        minutes = int(policy.min_duration.total_seconds() // 60)
        raise DurationTooShortError(f"Reservations must last at least {minutes} minutes.")

    if start < now - policy.grace_period:
        raise StartInPastError("requested_start is in the past.")

    connector = station.find_connector(request.connector_id) if request.station_id == station.id else None
    if connector is None:
        raise ConnectorUnavailableError(
            f"Connector {request.connector_id} does not belong to station {request.station_id}."
        )
    if not connector.bookable:
        raise ConnectorUnavailableError(f"Connector {connector.id} is {connector.status.value.lower()}.")

    if connector.type not in vehicle.supported_connectors:
        raise IncompatibleConnectorError(
            f"Vehicle cannot use a {connector.type.value} connector without an adapter."
        )
    return connector


def find_local_conflict(
    request: ReservationRequest,
    reservations: Iterable[Reservation],
    now: datetime,
) -> Reservation | None:
    """Return a known live reservation on the same connector overlapping ``request``."""
    window = request.window
    for reservation in reservations:
        if reservation.station_id != request.station_id:
            continue
        if reservation.connector_id != request.connector_id:
            continue
        if derive_status(reservation, now) not in (ReservationStatus.CONFIRMED, ReservationStatus.ACTIVE):
            continue
        if reservation.window.overlaps(window):
            return reservation
    return None
