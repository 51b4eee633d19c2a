from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from pse.models import DISCHARGEABLE, Period, RateStructure, UsageBreakdown

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolarAllocation:
    solar_allocation: UsageBreakdown
    remaining_usage: UsageBreakdown
    remaining_solar: float


@dataclass(frozen=True)
class BatteryDischarge:
    battery_offsets: UsageBreakdown
    remaining_usage: UsageBreakdown
    remaining_battery: float


@dataclass(frozen=True)
class OffsetAdjustment:
    usage_after_battery: UsageBreakdown
    battery_offsets: UsageBreakdown


def cost_from_usage(usage: UsageBreakdown, rates: RateStructure) -> float:
    """Bill in $ for the given kWh per period (a missing ultra-low period costs nothing)."""
    return sum(usage.get(p) * rates.get(p) for p in Period)


def _greedy(
    usage: UsageBreakdown,
    budget: float,
    order: Iterable[Period],
    allowed: frozenset[Period] | None = None,
) -> tuple[dict[Period, float], dict[Period, float], float]:
    applied: dict[Period, float] = {p: 0.0 for p in usage.periods()}
    remaining = usage.as_mapping()
    left = max(0.0, budget)
    for p in order:
        if left <= 0:
            break
        if allowed is not None and p not in allowed:
            continue
        available = remaining.get(p, 0.0)
        if available <= 0:
            continue
        take = min(available, left)
        applied[p] = applied.get(p, 0.0) + take
        remaining[p] = available - take
        left -= take
    return applied, remaining, left


def allocate_solar_to_periods(
    usage: UsageBreakdown,
    solar_kwh: float,
    priority_order: Iterable[Period],
) -> SolarAllocation:
    """Greedily offset usage with solar in the caller's period order."""
    applied, remaining, left = _greedy(usage, solar_kwh, priority_order)
    return SolarAllocation(
        solar_allocation=UsageBreakdown.zeros(ultra_low=usage.has_ultra_low).with_values(applied),
        remaining_usage=usage.with_values(remaining),
        remaining_solar=left,
    )


def discharge_battery_to_periods(
    usage: UsageBreakdown,
    battery_kwh: float,
    discharge_order: Iterable[Period],
) -> BatteryDischarge:
    """Greedy battery discharge into on/mid/off-peak; ultra-low entries in the order are skipped."""
    applied, remaining, left = _greedy(usage, battery_kwh, discharge_order, allowed=DISCHARGEABLE)
    return BatteryDischarge(
        battery_offsets=UsageBreakdown.zeros(ultra_low=usage.has_ultra_low).with_values(applied),
        remaining_usage=usage.with_values(remaining),
        remaining_battery=left,
    )


# Clawback order for the grid-purchase floor: cheapest offsets are given up first.
_CLAWBACK_ORDER: tuple[Period, ...] = (Period.OFF_PEAK, Period.MID_PEAK, Period.ON_PEAK)


def enforce_minimum_grid_purchases(
    usage_after_battery: UsageBreakdown,
    battery_offsets: UsageBreakdown,
    min_grid_kwh: float,
) -> OffsetAdjustment:
    """
    Keep total grid purchases at or above ``min_grid_kwh``.

    Battery offsets are given back to the grid off-peak -> mid-peak -> on-peak
    until the floor is met or the offsets run out.
    """
    deficit = min_grid_kwh - usage_after_battery.total
    if deficit <= 0:
        return OffsetAdjustment(usage_after_battery, battery_offsets)

    usage = usage_after_battery.as_mapping()
    offsets = battery_offsets.as_mapping()
    for p in _CLAWBACK_ORDER:
        if deficit <= 0:
            break
        have = offsets.get(p, 0.0)
        if have <= 0:
            continue
        take = min(have, deficit)
        offsets[p] = have - take
        usage[p] = usage.get(p, 0.0) + take
        deficit -= take

    logger.debug("grid floor %.1f kWh: clawed back battery offsets, unmet %.1f kWh", min_grid_kwh, max(deficit, 0.0))
    return OffsetAdjustment(
        usage_after_battery=usage_after_battery.with_values(usage),
        battery_offsets=battery_offsets.with_values(offsets),
    )


def cap_total_offset(
    usage_after_battery: UsageBreakdown,
    battery_offsets: UsageBreakdown,
    solar_used_for_load: float,
    annual_usage_kwh: float,
    max_offset_percent: float,
) -> OffsetAdjustment:
    """
    Limit solar + battery offsets to ``annual_usage_kwh * max_offset_percent``.

    The excess is taken from the battery offsets proportionally (same ratio in
    every period) and returned to grid usage.
    """
    battery_total = sum(battery_offsets.get(p) for p in DISCHARGEABLE)
    excess = solar_used_for_load + battery_total - annual_usage_kwh * max_offset_percent
    if excess <= 0 or battery_total <= 0:
        return OffsetAdjustment(usage_after_battery, battery_offsets)

    ratio = min(1.0, excess / battery_total)
    usage: dict[Period, float] = {}
    offsets: dict[Period, float] = {}
    for p in DISCHARGEABLE:
        cut = battery_offsets.get(p) * ratio
        offsets[p] = battery_offsets.get(p) - cut
        usage[p] = usage_after_battery.get(p) + cut

    logger.debug("offset cap %.0f%%: reduced battery offsets by ratio %.4f", max_offset_percent * 100, ratio)
    return OffsetAdjustment(
        usage_after_battery=usage_after_battery.with_values(usage),
        battery_offsets=battery_offsets.with_values(offsets),
    )
