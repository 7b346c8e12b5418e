"""REST implementation of the reservation backend."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

import aiohttp

from ...const import DEFAULT_RETRY_BACKOFF, MAX_READ_RETRIES
from ...exceptions import AlreadyFinalizedError, BackendError, PyEVChargingError, SlotConflictError
from ...models import Reservation, ReservationRequest, StoredStatus
from ...util import format_utc_timestamp, mask_identifier, require_id
from ..adapter import map_conflict, map_reservation, map_reservation_list
from ..base import HttpBackend
from .const import DEFAULT_HEADERS, IDEMPOTENCY_HEADER, RESERVATIONS_ENDPOINT

_LOGGER = logging.getLogger(__name__)


class Backend(HttpBackend):
    """Reservation service reached over ``/reservations``."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        base_url: str | None = None,
        api_uri: str | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        retry_count: int = MAX_READ_RETRIES,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the backend."""
        super().__init__(
            session,
            base_url=base_url,
            api_uri=api_uri,
            timeout=timeout,
            retry_count=retry_count,
            retry_backoff=retry_backoff,
            headers={**DEFAULT_HEADERS, **(headers or {})},
        )

    async def create_reservation(self, request: ReservationRequest) -> Reservation:
        """Create a reservation; the backend arbitrates the slot."""
        _LOGGER.debug(
            "create_reservation started for user %s on %s/%s",
            mask_identifier(request.user_id),
            request.station_id,
            request.connector_id,
        )
        payload = {
            "userId": request.user_id,
            "vehicleId": request.vehicle_id,
            "stationId": request.station_id,
            "connectorId": request.connector_id,
            "startTime": format_utc_timestamp(request.requested_start),
            "endTime": format_utc_timestamp(request.requested_end),
            "idempotencyKey": request.idempotency_key,
        }
        if request.payment_method is not None:
            payload["paymentMethod"] = request.payment_method.value
        data = await self._request_json(
            "POST",
            RESERVATIONS_ENDPOINT,
            json=payload,
            headers={IDEMPOTENCY_HEADER: request.idempotency_key},
        )
        reservation = map_reservation(data)
        _LOGGER.debug("create_reservation completed: %s", reservation.id)
        return reservation

    async def cancel_reservation(self, reservation_id: str) -> Reservation:
        """Ask the backend to cancel a reservation."""
        reservation_id_value = require_id(reservation_id, "reservation_id")
        _LOGGER.debug("cancel_reservation started: %s", reservation_id_value)
        data = await self._request_json(
            "PATCH",
            f"{RESERVATIONS_ENDPOINT}/{reservation_id_value}",
            json={"status": StoredStatus.CANCELLED.value},
        )
        reservation = map_reservation(data)
        if reservation.stored_status is not StoredStatus.CANCELLED:
            raise BackendError("Backend did not cancel the reservation.")
        _LOGGER.debug("cancel_reservation completed: %s", reservation.id)
        return reservation

    async def list_reservations(
        self,
        user_id: str | None = None,
        *,
        station_id: str | None = None,
        statuses: Iterable[StoredStatus] | None = None,
    ) -> list[Reservation]:
        """Return stored reservations matching the filters."""
        params: dict[str, str] = {}
        if user_id is not None:
            params["userId"] = require_id(user_id, "user_id")
        if station_id is not None:
            params["stationId"] = require_id(station_id, "station_id")
        if statuses:
            params["status"] = ",".join(status.value for status in statuses)
        data = await self._request_json("GET", RESERVATIONS_ENDPOINT, params=params)
        reservations = map_reservation_list(data)
        _LOGGER.debug("list_reservations completed: %s reservations", len(reservations))
        return reservations

    def _conflict_error(self, method: str, payload: Any, message: str | None) -> PyEVChargingError:
        if method.upper() == "POST":
            return SlotConflictError(
                message or "This charging slot is already reserved.",
                conflict=map_conflict(payload),
            )
        if method.upper() == "PATCH":
            status = payload.get("status") if isinstance(payload, dict) else None
            return AlreadyFinalizedError(message or "Reservation is already finalized.", status=status)
        return super()._conflict_error(method, payload, message)
