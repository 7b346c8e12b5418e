"""Reservation state machine.

Only Confirmed, Completed and Cancelled are stored. Active and Expired are
derived from the clock on every read and are never written back.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from .const import STATUS_REFRESH_INTERVAL
from .exceptions import AlreadyFinalizedError
from .models import Reservation, ReservationStatus, StoredStatus
from .util import ensure_aware, utcnow

_LOGGER = logging.getLogger(__name__)

FINAL_STATUSES = frozenset(
    {
        ReservationStatus.COMPLETED,
        ReservationStatus.CANCELLED,
        ReservationStatus.EXPIRED,
    }
)
CANCELLABLE_STATUSES = frozenset({ReservationStatus.CONFIRMED, ReservationStatus.ACTIVE})


def derive_status(reservation: Reservation, now: datetime) -> ReservationStatus:
    now = ensure_aware(now, "now")
    if reservation.stored_status == StoredStatus.CANCELLED:
        return ReservationStatus.CANCELLED
    if reservation.stored_status == StoredStatus.COMPLETED:
        return ReservationStatus.COMPLETED
    if now < reservation.start_time:
        return ReservationStatus.CONFIRMED
    if now < reservation.end_time:
        return ReservationStatus.ACTIVE
    return ReservationStatus.EXPIRED


def is_final(status: ReservationStatus) -> bool:
    return status in FINAL_STATUSES


def ensure_cancellable(reservation: Reservation, now: datetime) -> ReservationStatus:
    """Raise AlreadyFinalizedError unless the user may still cancel."""
    status = derive_status(reservation, now)
    if status not in CANCELLABLE_STATUSES:
        raise AlreadyFinalizedError(
            f"Reservation {reservation.id} is {status.value.lower()}.",
            status=status,
        )
    return status


def next_transition_at(reservation: Reservation, now: datetime) -> datetime | None:
    """Return when the derived status next changes, or None once it cannot."""
    status = derive_status(reservation, now)
    if status is ReservationStatus.CONFIRMED:
        return reservation.start_time
    if status is ReservationStatus.ACTIVE:
        return reservation.end_time
    return None


@dataclass(frozen=True, slots=True)
class StatusChange:
    reservation: Reservation
    previous: ReservationStatus | None
    current: ReservationStatus


class StatusWatcher:
    """Re-derive reservation statuses on a schedule and report changes.

    ``evaluate`` is the explicit re-evaluation call; ``start`` runs it in a
    background task every ``interval`` seconds, waking early when a
    reservation is due to start or end.
    """

    def __init__(
        self,
        source: Callable[[], Iterable[Reservation]],
        on_change: Callable[[StatusChange], None] | None = None,
        *,
        interval: float = STATUS_REFRESH_INTERVAL,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive.")
        self._source = source
        self._on_change = on_change
        self._interval = interval
        self._clock = clock
        self._seen: dict[str, ReservationStatus] = {}
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def status_of(self, reservation_id: str) -> ReservationStatus | None:
        return self._seen.get(reservation_id)

    def evaluate(self, now: datetime | None = None) -> list[StatusChange]:
        now = now or self._clock()
        changes: list[StatusChange] = []
        current_ids: set[str] = set()
        for reservation in self._source():
            current_ids.add(reservation.id)
            status = derive_status(reservation, now)
            previous = self._seen.get(reservation.id)
            if previous is status:
                continue
            self._seen[reservation.id] = status
            change = StatusChange(reservation=reservation, previous=previous, current=status)
            changes.append(change)
            _LOGGER.debug(
                "Reservation %s status %s -> %s",
                reservation.id,
                previous.value if previous else None,
                status.value,
            )
            if self._on_change is not None:
                try:
                    self._on_change(change)
                except Exception:
                    _LOGGER.exception("Status change callback failed for %s", reservation.id)
        for stale_id in set(self._seen) - current_ids:
            del self._seen[stale_id]
        return changes

    def seconds_until_next(self, now: datetime | None = None) -> float:
        now = now or self._clock()
        delay = self._interval
        for reservation in self._source():
            due = next_transition_at(reservation, now)
            if due is None:
                continue
            delay = min(delay, max(0.0, (due - now).total_seconds()))
        return delay

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            try:
                self.evaluate()
                delay = self.seconds_until_next()
            except Exception:
                _LOGGER.exception("Status re-evaluation failed")
                delay = self._interval
            await asyncio.sleep(delay)
