"""Normalize raw backend records into the library's models.

The data service is loose about field names (``_id``/``id``,
``connectorId``/``chargerId``, ``cost``/``totalCost``/``finalCost``) and
sometimes populates references into nested objects. Every such variation
is resolved here so the rest of the library only sees canonical models.
"""

from __future__ import annotations

import re
from typing import Any

from ..exceptions import BackendError, ValidationError
from ..models import (
    Connector,
    PaymentMethod,
    Reservation,
    Station,
    StationPricing,
    TimeWindow,
)
from ..util import (
    normalize_connector_status,
    normalize_connector_type,
    normalize_stored_status,
    parse_timestamp,
)

_PRICE_RE = re.compile(r"(\d+(?:[.,]\d+)?)")
_COST_KEYS = ("finalCost", "totalCost", "actualCost", "cost")


def unwrap(data: Any, key: str) -> Any:
    """Return ``data[key]`` for enveloped responses such as ``{"reservation": {...}}``."""
    if isinstance(data, dict) and isinstance(data.get(key), dict):
        return data[key]
    return data


def map_reservation_list(data: Any) -> list[Reservation]:
    if data is None:
        return []
    if isinstance(data, dict) and isinstance(data.get("reservations"), list):
        data = data["reservations"]
    if not isinstance(data, list):
        raise BackendError("Backend response included invalid reservations.")
    return [map_reservation(item) for item in data if isinstance(item, dict)]


def map_reservation(data: Any) -> Reservation:
    data = unwrap(data, "reservation")
    if not isinstance(data, dict):
        raise BackendError("Backend response included invalid reservation data.")
    reservation_id = _reference_id(data, "_id", "id")
    station_id = _reference_id(data, "stationId", "station_id")
    connector_id = _reference_id(data, "connectorId", "chargerId", "connector_id")
    if reservation_id is None or station_id is None or connector_id is None:
        raise BackendError("Backend response missing reservation fields.")
    start_raw = data.get("startTime")
    end_raw = data.get("endTime")
    status_raw = data.get("status") or "Confirmed"
    if start_raw is None or end_raw is None:
        raise BackendError("Backend response missing reservation fields.")
    try:
        start = parse_timestamp(start_raw)
        end = parse_timestamp(end_raw)
        created_raw = data.get("createdAt")
        created_at = parse_timestamp(created_raw) if created_raw else None
        stored_status = normalize_stored_status(status_raw)
    except ValidationError as exc:
        raise BackendError("Backend returned invalid reservation data.") from exc
    if end <= start:
        raise BackendError("Backend returned a reservation that ends before it starts.")
    return Reservation(
        id=reservation_id,
        station_id=station_id,
        connector_id=connector_id,
        start_time=start,
        end_time=end,
        stored_status=stored_status,
        created_at=created_at,
        user_id=_reference_id(data, "userId", "user_id"),
        vehicle_id=_reference_id(data, "vehicleId", "carId", "vehicle_id"),
        payment_method=_payment_method(data.get("paymentMethod")),
        reservation_fee=_parse_float(data.get("reservationFee")) or 0.0,
        cost=_first_float(data, _COST_KEYS),
    )


def map_conflict(data: Any) -> TimeWindow | None:
    if not isinstance(data, dict):
        return None
    conflict = data.get("conflict")
    if not isinstance(conflict, dict):
        return None
    try:
        return TimeWindow(
            parse_timestamp(conflict.get("startTime")),
            parse_timestamp(conflict.get("endTime")),
        )
    except ValidationError:
        return None


def map_station(data: Any) -> Station:
    data = unwrap(data, "station")
    if not isinstance(data, dict):
        raise BackendError("Backend response included invalid station data.")
    station_id = _reference_id(data, "_id", "id")
    if station_id is None:
        raise BackendError("Backend response missing station id.")
    raw_connectors = data.get("connectors") or []
    if not isinstance(raw_connectors, list):
        raise BackendError("Backend response included invalid connectors.")
    name = data.get("stationName") or data.get("name") or ""
    return Station(
        id=station_id,
        connectors=tuple(map_connector(item) for item in raw_connectors if isinstance(item, dict)),
        pricing=map_pricing(data.get("pricing")),
        name=str(name),
    )


def map_connector(data: Any) -> Connector:
    if not isinstance(data, dict):
        raise BackendError("Backend response included invalid connector data.")
    connector_id = _reference_id(data, "_id", "id", "connectorId")
    if connector_id is None:
        raise BackendError("Backend response missing connector id.")
    power = _first_float(data, ("ratedPowerKW", "powerKW", "power", "maxPower"))
    if power is None or power <= 0:
        raise BackendError("Backend response included invalid connector power.")
    try:
        connector_type = normalize_connector_type(data.get("type"))
        status = normalize_connector_status(data.get("status") or "available")
    except ValidationError as exc:
        raise BackendError("Backend returned invalid connector data.") from exc
    return Connector(id=connector_id, type=connector_type, rated_power_kw=power, status=status)


def map_pricing(raw: Any) -> StationPricing:
    if isinstance(raw, dict):
        return StationPricing(
            per_kwh=_first_float(raw, ("perKwh", "perKWh", "pricePerKwh")),
            per_hour=_first_float(raw, ("perHour", "pricePerHour")),
            session_fee=_first_float(raw, ("sessionFee",)) or 0.0,
        )
    if isinstance(raw, str):
        # Free-text prices such as "0.45 TND/kWh".
        match = _PRICE_RE.search(raw)
        if match and "kwh" in raw.lower():
            return StationPricing(per_kwh=float(match.group(1).replace(",", ".")))
        if match and ("/h" in raw.lower() or "hour" in raw.lower()):
            return StationPricing(per_hour=float(match.group(1).replace(",", ".")))
    return StationPricing()


def _reference_id(data: dict, *keys: str) -> str | None:
    for key in keys:
        value = data.get(key)
        if isinstance(value, dict):
            value = value.get("_id") or value.get("id")
        if value is None or isinstance(value, bool):
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def _payment_method(value: Any) -> PaymentMethod | None:
    if not isinstance(value, str):
        return None
    for method in PaymentMethod:
        if method.value.lower() == value.strip().lower():
            return method
    return None


def _first_float(data: dict, keys: tuple[str, ...]) -> float | None:
    for key in keys:
        value = _parse_float(data.get(key))
        if value is not None:
            return value
    return None


def _parse_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None
