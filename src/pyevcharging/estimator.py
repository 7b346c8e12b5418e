"""Energy, time and cost estimate for a charging session."""

from __future__ import annotations

import math

from .const import DEFAULT_PRICE_PER_KWH
from .exceptions import ConnectorUnavailableError, InvalidRangeError, ValidationError
from .models import ChargingEstimate, Connector, Station, VehicleProfile

_MINUTE_TOLERANCE = 1e-9


def energy_needed_kwh(vehicle: VehicleProfile) -> float:
    """Return the energy to go from the current to the target state of charge."""
    capacity = vehicle.battery_capacity_kwh
    if not _is_number(capacity) or capacity <= 0:
        raise ValidationError("battery_capacity_kwh must be greater than zero.")
    current = vehicle.current_soc_percent
    target = vehicle.target_soc_percent
    if not _is_number(current) or not 0 <= current <= 100:
        raise InvalidRangeError("current_soc_percent must be between 0 and 100.")
    if not _is_number(target) or not 0 <= target <= 100:
        raise InvalidRangeError("target_soc_percent must be between 0 and 100.")
    if target <= current:
        raise InvalidRangeError("target_soc_percent must be greater than current_soc_percent.")
    return capacity * (target - current) / 100


def effective_power_kw(vehicle: VehicleProfile, connector: Connector) -> float:
    rated = connector.rated_power_kw
    if not _is_number(rated) or rated <= 0:
        raise ValidationError("rated_power_kw must be greater than zero.")
    accepted = vehicle.max_accept_power_kw
    if accepted is None or not _is_number(accepted) or accepted <= 0:
        return float(rated)
    return float(min(rated, accepted))


def estimate(
    vehicle: VehicleProfile,
    connector: Connector,
    price_per_kwh: float | None = None,
    *,
    per_hour: float | None = None,
    session_fee: float = 0.0,
    default_price_per_kwh: float = DEFAULT_PRICE_PER_KWH,
) -> ChargingEstimate:
    """Estimate energy, duration and cost of charging ``vehicle`` on ``connector``.

    Duration is rounded up to the next whole minute and is never below one.
    A missing ``price_per_kwh`` falls back to ``default_price_per_kwh``; the
    cost is advisory so an unpriced station still gets an estimate.
    """
    energy = energy_needed_kwh(vehicle)
    power = effective_power_kw(vehicle, connector)
    # Float noise (16.0000000001) must not add a minute.
    duration = max(1, math.ceil(energy / power * 60 - _MINUTE_TOLERANCE))

    used_default = price_per_kwh is None or not _is_number(price_per_kwh) or price_per_kwh < 0
    rate = float(default_price_per_kwh) if used_default else float(price_per_kwh)
    cost = energy * rate
    if per_hour is not None and _is_number(per_hour) and per_hour > 0:
        cost += per_hour * duration / 60
    if _is_number(session_fee) and session_fee > 0:
        cost += session_fee
    return ChargingEstimate(
        energy_needed_kwh=round(energy, 3),
        effective_power_kw=power,
        duration_minutes=duration,
        cost_estimate=round(cost, 2),
        price_per_kwh=rate,
        used_default_rate=used_default,
    )


def estimate_for_station(
    vehicle: VehicleProfile,
    station: Station,
    connector_id: str,
    *,
    default_price_per_kwh: float = DEFAULT_PRICE_PER_KWH,
) -> ChargingEstimate:
    connector = station.find_connector(connector_id)
    if connector is None:
        raise ConnectorUnavailableError(f"Connector {connector_id} does not belong to station {station.id}.")
    pricing = station.pricing
    return estimate(
        vehicle,
        connector,
        pricing.per_kwh,
        per_hour=pricing.per_hour,
        session_fee=pricing.session_fee,
        default_price_per_kwh=default_price_per_kwh,
    )


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool) and math.isfinite(value)
