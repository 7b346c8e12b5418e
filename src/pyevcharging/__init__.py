"""pyevcharging package."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .backend import BaseBackend, InMemoryBackend
from .backend.adapter import map_connector, map_pricing, map_reservation, map_station
from .client import Client
from .estimator import estimate
from .exceptions import (
    AlreadyFinalizedError,
    AuthError,
    BackendError,
    BackendTimeoutError,
    ConfigError,
    ConnectorUnavailableError,
    DurationTooShortError,
    IncompatibleConnectorError,
    InvalidRangeError,
    NetworkError,
    NotFoundError,
    PyEVChargingError,
    ServiceUnavailableError,
    SlotConflictError,
    StartInPastError,
    ValidationError,
)
from .models import (
    ChargingEstimate,
    Connector,
    ConnectorStatus,
    ConnectorType,
    PaymentMethod,
    Reservation,
    ReservationRequest,
    ReservationStatus,
    SchedulingPolicy,
    Station,
    StationPricing,
    StoredStatus,
    TimeWindow,
    VehicleProfile,
)
from .result import Err, Ok, Result
from .service import ReservationService
from .state import StatusChange, StatusWatcher, derive_status
from .validator import validate_request

try:
    __version__ = version("pyevcharging")
except PackageNotFoundError:  # pragma: no cover - not installed
    __version__ = "0.0.0"

__all__ = [
    "AlreadyFinalizedError",
    "AuthError",
    "BackendError",
    "BackendTimeoutError",
    "BaseBackend",
    "ChargingEstimate",
    "Client",
    "ConfigError",
    "Connector",
    "ConnectorStatus",
    "ConnectorType",
    "ConnectorUnavailableError",
    "DurationTooShortError",
    "Err",
    "IncompatibleConnectorError",
    "InMemoryBackend",
    "InvalidRangeError",
    "NetworkError",
    "NotFoundError",
    "Ok",
    "PaymentMethod",
    "PyEVChargingError",
    "Reservation",
    "ReservationRequest",
    "ReservationService",
    "ReservationStatus",
    "Result",
    "SchedulingPolicy",
    "ServiceUnavailableError",
    "SlotConflictError",
    "StartInPastError",
    "Station",
    "StationPricing",
    "StatusChange",
    "StatusWatcher",
    "StoredStatus",
    "TimeWindow",
    "ValidationError",
    "VehicleProfile",
    "__version__",
    "derive_status",
    "estimate",
    "map_connector",
    "map_pricing",
    "map_reservation",
    "map_station",
    "validate_request",
]
