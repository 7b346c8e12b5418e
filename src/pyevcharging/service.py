"""Reservation lifecycle service.

Every public operation returns ``Ok`` or ``Err``. Expected business
outcomes (validation failures, slot conflicts, finalized reservations,
transport failures) come back as ``Err`` and are never raised.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

from .backend.base import BaseBackend
from .const import DEFAULT_OPERATION_TIMEOUT
from .estimator import estimate as _estimate
from .exceptions import (
    AlreadyFinalizedError,
    BackendTimeoutError,
    NetworkError,
    NotFoundError,
    PyEVChargingError,
    SlotConflictError,
)
from .models import (
    ChargingEstimate,
    Connector,
    Reservation,
    ReservationRequest,
    ReservationStatus,
    SchedulingPolicy,
    Station,
    VehicleProfile,
)
from .result import Err, Ok, Result
from .state import StatusChange, StatusWatcher, derive_status, ensure_cancellable
from .util import mask_identifier, utcnow
from .validator import find_local_conflict, validate_request

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class ReservationService:
    """Book, track and cancel charging slots against a backend.

    The service keeps the reservations it has seen in ``reservations``; this
    is the only local state and it is rebuilt from the backend by
    ``refresh``.
    """

    def __init__(
        self,
        backend: BaseBackend,
        *,
        policy: SchedulingPolicy | None = None,
        clock: Callable[[], datetime] = utcnow,
        operation_timeout: float = DEFAULT_OPERATION_TIMEOUT,
        create_retry_count: int = 0,
    ) -> None:
        self._backend = backend
        self._policy = policy or SchedulingPolicy()
        self._clock = clock
        self._operation_timeout = operation_timeout
        self._create_retry_count = min(1, max(0, create_retry_count))
        self._reservations: dict[str, Reservation] = {}
        # idempotency key -> reservation id, None until a create returns
        self._submitted: dict[str, str | None] = {}

    @property
    def policy(self) -> SchedulingPolicy:
        return self._policy

    @property
    def reservations(self) -> list[Reservation]:
        return list(self._reservations.values())

    def track(self, reservation: Reservation) -> None:
        self._reservations[reservation.id] = reservation

    def get(self, reservation_id: str) -> Reservation | None:
        return self._reservations.get(reservation_id)

    def estimate(
        self,
        vehicle: VehicleProfile,
        connector: Connector,
        price_per_kwh: float | None = None,
        *,
        per_hour: float | None = None,
        session_fee: float = 0.0,
    ) -> Result[ChargingEstimate]:
        try:
            return Ok(
                _estimate(
                    vehicle,
                    connector,
                    price_per_kwh,
                    per_hour=per_hour,
                    session_fee=session_fee,
                    default_price_per_kwh=self._policy.default_price_per_kwh,
                )
            )
        except PyEVChargingError as exc:
            return Err(exc)

    def validate(
        self,
        request: ReservationRequest,
        station: Station,
        vehicle: VehicleProfile,
        now: datetime | None = None,
    ) -> Result[Connector]:
        try:
            return Ok(validate_request(request, station, vehicle, now or self._clock(), policy=self._policy))
        except PyEVChargingError as exc:
            return Err(exc)

    def derive_status(self, reservation: Reservation, now: datetime | None = None) -> ReservationStatus:
        return derive_status(reservation, now or self._clock())

    async def request_reservation(
        self,
        request: ReservationRequest,
        station: Station,
        vehicle: VehicleProfile,
    ) -> Result[Reservation]:
        """Validate ``request`` and submit it to the backend.

        A SlotConflictError is returned as-is and never retried. A transport
        failure is retried at most ``create_retry_count`` times with the same
        idempotency key; callers retrying later should resubmit the same
        request object for the same reason. A resubmitted key skips the local
        overlap check, since the overlapping reservation may be its own.
        """
        key = request.idempotency_key
        resubmitted = key in self._submitted
        known = self._reservations.get(self._submitted.get(key) or "")
        if known is not None:
            return Ok(known)

        now = self._clock()
        validated = self.validate(request, station, vehicle, now)
        if isinstance(validated, Err):
            _LOGGER.debug("Reservation request rejected locally: %s", validated.error_code)
            return validated
        local = None if resubmitted else find_local_conflict(request, self._reservations.values(), now)
        if local is not None:
            return Err(
                SlotConflictError(
                    "You already hold an overlapping reservation on this connector.",
                    conflict=local.window,
                )
            )

        _LOGGER.debug(
            "Submitting reservation for user %s on %s/%s",
            mask_identifier(request.user_id),
            request.station_id,
            request.connector_id,
        )
        self._submitted.setdefault(key, None)
        retries_left = self._create_retry_count
        while True:
            try:
                reservation = await self._call(self._backend.create_reservation(request))
            except SlotConflictError as exc:
                _LOGGER.warning(
                    "Slot %s/%s was taken before submission",
                    request.station_id,
                    request.connector_id,
                )
                return Err(exc)
            except NetworkError as exc:
                if retries_left <= 0:
                    return Err(exc)
                retries_left -= 1
                _LOGGER.debug("Create failed (%s), retrying with the same key", exc.error_code)
                continue
            except PyEVChargingError as exc:
                return Err(exc)
            self._submitted[key] = reservation.id
            self.track(reservation)
            return Ok(reservation)

    async def cancel_reservation(self, reservation_id: str) -> Result[Reservation]:
        """Cancel a reservation the user still holds.

        The local view only changes after the backend confirms.
        """
        reservation = self._reservations.get(reservation_id)
        if reservation is None:
            return Err(NotFoundError(f"Reservation {reservation_id} is not tracked."))
        try:
            ensure_cancellable(reservation, self._clock())
        except AlreadyFinalizedError as exc:
            return Err(exc)
        try:
            cancelled = await self._call(self._backend.cancel_reservation(reservation_id))
        except AlreadyFinalizedError as exc:
            _LOGGER.warning("Reservation %s was already finalized, refreshing", reservation_id)
            if reservation.user_id is not None:
                await self.refresh(reservation.user_id)
            return Err(exc)
        except PyEVChargingError as exc:
            return Err(exc)
        self.track(cancelled)
        return Ok(cancelled)

    async def refresh(self, user_id: str) -> Result[list[Reservation]]:
        """Replace the user's tracked reservations with the backend's records."""
        try:
            reservations = await self._call(self._backend.list_reservations(user_id))
        except PyEVChargingError as exc:
            _LOGGER.warning("Refreshing reservations failed: %s", exc.error_code)
            return Err(exc)
        for stale_id in [key for key, value in self._reservations.items() if value.user_id == user_id]:
            del self._reservations[stale_id]
        for reservation in reservations:
            self.track(reservation)
        return Ok(reservations)

    def watcher(
        self,
        on_change: Callable[[StatusChange], None] | None = None,
        *,
        interval: float | None = None,
    ) -> StatusWatcher:
        kwargs = {"interval": interval} if interval is not None else {}
        return StatusWatcher(lambda: self.reservations, on_change, clock=self._clock, **kwargs)

    async def _call(self, awaitable: Awaitable[T]) -> T:
        try:
            async with asyncio.timeout(self._operation_timeout):
                return await awaitable
        except TimeoutError as exc:
            raise BackendTimeoutError("Backend call timed out.") from exc
