"""Public data models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import StrEnum

from .const import DEFAULT_PRICE_PER_KWH, GRACE_PERIOD, MIN_DURATION


class ConnectorType(StrEnum):
    TYPE1 = "Type1"
    TYPE2 = "Type2"
    TYPE3 = "Type3"
    CCS = "CCS"
    CCS1 = "CCS1"
    CCS2 = "CCS2"
    CHADEMO = "CHAdeMO"
    TESLA = "Tesla"
    GB_T = "GB/T"
    SCHUKO = "Schuko"


class ConnectorStatus(StrEnum):
    AVAILABLE = "Available"
    BUSY = "Busy"
    OFFLINE = "Offline"
    MAINTENANCE = "Maintenance"


class StoredStatus(StrEnum):
    """Statuses the backend persists."""

    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class ReservationStatus(StrEnum):
    """Statuses shown to the user, derived from the stored status and the clock."""

    CONFIRMED = "Confirmed"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    EXPIRED = "Expired"


class PaymentMethod(StrEnum):
    VISA = "Visa"
    MASTERCARD = "Mastercard"
    PAYPAL = "PayPal"
    ON_SITE = "OnSite"


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """Half-open interval ``[start, end)``."""

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: TimeWindow) -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


@dataclass(frozen=True, slots=True)
class VehicleProfile:
    battery_capacity_kwh: float
    current_soc_percent: float
    target_soc_percent: float
    primary_connector: ConnectorType
    adapters: frozenset[ConnectorType] = frozenset()
    max_accept_power_kw: float | None = None
    id: str | None = None

    @property
    def supported_connectors(self) -> frozenset[ConnectorType]:
        return frozenset({self.primary_connector}) | frozenset(self.adapters)


@dataclass(frozen=True, slots=True)
class Connector:
    id: str
    type: ConnectorType
    rated_power_kw: float
    status: ConnectorStatus = ConnectorStatus.AVAILABLE

    @property
    def bookable(self) -> bool:
        return self.status not in (ConnectorStatus.OFFLINE, ConnectorStatus.MAINTENANCE)


@dataclass(frozen=True, slots=True)
class StationPricing:
    per_kwh: float | None = None
    per_hour: float | None = None
    session_fee: float = 0.0


@dataclass(frozen=True, slots=True)
class Station:
    id: str
    connectors: tuple[Connector, ...]
    pricing: StationPricing = field(default_factory=StationPricing)
    name: str = ""

    def find_connector(self, connector_id: str) -> Connector | None:
        for connector in self.connectors:
            if connector.id == connector_id:
                return connector
        return None


@dataclass(frozen=True, slots=True)
class SchedulingPolicy:
    min_duration: timedelta = MIN_DURATION
    grace_period: timedelta = GRACE_PERIOD
    default_price_per_kwh: float = DEFAULT_PRICE_PER_KWH


@dataclass(frozen=True, slots=True)
class ReservationRequest:
    """A slot the user wants to book; never persisted.

    The idempotency key is generated once per user intent. Resubmitting the
    same request object reuses it, so a retried create cannot double-book.
    """

    user_id: str
    vehicle_id: str
    station_id: str
    connector_id: str
    requested_start: datetime
    requested_end: datetime
    payment_method: PaymentMethod | None = None
    idempotency_key: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.requested_start, self.requested_end)


@dataclass(frozen=True, slots=True)
class Reservation:
    id: str
    station_id: str
    connector_id: str
    start_time: datetime
    end_time: datetime
    stored_status: StoredStatus
    created_at: datetime | None = None
    user_id: str | None = None
    vehicle_id: str | None = None
    payment_method: PaymentMethod | None = None
    reservation_fee: float = 0.0
    cost: float | None = None

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start_time, self.end_time)

    def with_status(self, status: StoredStatus) -> Reservation:
        return replace(self, stored_status=status)


@dataclass(frozen=True, slots=True)
class ChargingEstimate:
    energy_needed_kwh: float
    effective_power_kw: float
    duration_minutes: int
    cost_estimate: float
    price_per_kwh: float
    used_default_rate: bool = False
