"""In-process reservation backend.

Arbitrates slots the way the real service must: creates for one connector
are serialized behind a per-connector lock, an overlapping Confirmed
reservation yields SlotConflictError, and a repeated idempotency key returns
the reservation created for it the first time.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime

from ..exceptions import AlreadyFinalizedError, NotFoundError, SlotConflictError, ValidationError
from ..models import Reservation, ReservationRequest, StoredStatus
from ..state import ensure_cancellable
from ..util import ensure_aware, mask_identifier, require_id, utcnow
from .base import BaseBackend

_LOGGER = logging.getLogger(__name__)


class InMemoryBackend(BaseBackend):
    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = utcnow,
        latency: float = 0.0,
    ) -> None:
        self._clock = clock
        self._latency = max(0.0, latency)
        self._reservations: dict[str, Reservation] = {}
        self._by_key: dict[str, str] = {}
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}

    @property
    def reservations(self) -> list[Reservation]:
        return list(self._reservations.values())

    async def create_reservation(self, request: ReservationRequest) -> Reservation:
        start = ensure_aware(request.requested_start, "requested_start")
        end = ensure_aware(request.requested_end, "requested_end")
        if end <= start:
            raise ValidationError("endTime must be after startTime.")
        key = (request.station_id, request.connector_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            existing_id = self._by_key.get(request.idempotency_key)
            if existing_id is not None:
                _LOGGER.debug("Idempotent replay for key %s", request.idempotency_key)
                return self._reservations[existing_id]
            if self._latency:
                await asyncio.sleep(self._latency)
            window = request.window
            for reservation in self._reservations.values():
                if (reservation.station_id, reservation.connector_id) != key:
                    continue
                if reservation.stored_status is not StoredStatus.CONFIRMED:
                    continue
                if reservation.window.overlaps(window):
                    _LOGGER.debug(
                        "Slot conflict on %s/%s for user %s",
                        request.station_id,
                        request.connector_id,
                        mask_identifier(request.user_id),
                    )
                    raise SlotConflictError(
                        "This charging slot is already reserved.",
                        conflict=reservation.window,
                    )
            reservation = Reservation(
                id=uuid.uuid4().hex,
                station_id=request.station_id,
                connector_id=request.connector_id,
                start_time=start,
                end_time=end,
                stored_status=StoredStatus.CONFIRMED,
                created_at=self._clock(),
                user_id=request.user_id,
                vehicle_id=request.vehicle_id,
                payment_method=request.payment_method,
            )
            self._reservations[reservation.id] = reservation
            self._by_key[request.idempotency_key] = reservation.id
            return reservation

    async def cancel_reservation(self, reservation_id: str) -> Reservation:
        reservation = self._get(reservation_id)
        ensure_cancellable(reservation, self._clock())
        cancelled = reservation.with_status(StoredStatus.CANCELLED)
        self._reservations[cancelled.id] = cancelled
        return cancelled

    async def complete_reservation(self, reservation_id: str) -> Reservation:
        """Record that the charging session for a reservation finished."""
        reservation = self._get(reservation_id)
        if reservation.stored_status is not StoredStatus.CONFIRMED:
            raise AlreadyFinalizedError(
                f"Reservation {reservation.id} is {reservation.stored_status.value.lower()}.",
                status=reservation.stored_status,
            )
        completed = reservation.with_status(StoredStatus.COMPLETED)
        self._reservations[completed.id] = completed
        return completed

    async def list_reservations(
        self,
        user_id: str | None = None,
        *,
        station_id: str | None = None,
        statuses: Iterable[StoredStatus] | None = None,
    ) -> list[Reservation]:
        wanted = frozenset(statuses) if statuses else None
        results = [
            reservation
            for reservation in self._reservations.values()
            if (user_id is None or reservation.user_id == user_id)
            and (station_id is None or reservation.station_id == station_id)
            and (wanted is None or reservation.stored_status in wanted)
        ]
        return sorted(results, key=lambda reservation: reservation.start_time, reverse=True)

    def _get(self, reservation_id: str) -> Reservation:
        reservation_id_value = require_id(reservation_id, "reservation_id")
        reservation = self._reservations.get(reservation_id_value)
        if reservation is None:
            raise NotFoundError("Reservation not found.")
        return reservation
