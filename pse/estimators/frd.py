"""
Day/night step model for solar + battery savings.

Steps:
  A) split annual load into day and night halves
  B) solar covers day load first; the rest is excess
  C) the battery charges from excess solar, then (AI mode on a plan with an
     ultra-low window) from the grid, up to one full cycle a day and the night load
  D) the battery discharges on -> mid -> off -> ultra-low
  E) classify the sizing edge case and track unused solar
  F) price the remaining grid purchases (grid charging booked at the cheapest period)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pse.catalog.distributions import (
    DEFAULT_DAY_NIGHT_SPLIT,
    DayNightSplit,
    UsageDistribution,
    default_distribution,
    usage_from_distribution,
)
from pse.catalog.rate_plans import RatePlan, rates_from_plan
from pse.engine.policies import DAYS_PER_YEAR
from pse.engine.primitives import allocate_solar_to_periods, cost_from_usage
from pse.models import BatterySpec, Period, UsageBreakdown, non_negative

logger = logging.getLogger(__name__)

_SOLAR_ORDER = (Period.ON_PEAK, Period.MID_PEAK, Period.OFF_PEAK, Period.ULTRA_LOW)
_DISCHARGE_ORDER = (Period.ON_PEAK, Period.MID_PEAK, Period.OFF_PEAK, Period.ULTRA_LOW)


class EdgeCase(str, Enum):
    NONE = "none"
    HIGH_USAGE = "high_usage"
    HIGH_CAPACITY = "high_capacity"


@dataclass(frozen=True)
class OffsetPercentages:
    solar_direct: float
    solar_charged_battery: float
    grid_charged_battery: float
    grid_remaining: float


@dataclass(frozen=True)
class FrdPeakShavingResult:
    day_load: float
    night_load: float
    solar_to_day: float
    solar_excess: float
    day_grid_after_solar: float
    batt_solar_charged: float
    batt_grid_charged: float
    batt_total: float
    battery_discharge: UsageBreakdown
    edge_case: EdgeCase
    batt_total_effective: float
    effective_cycles: float
    solar_unused: float
    grid_kwh: UsageBreakdown
    baseline_cost: float
    annual_cost_after: float
    annual_savings: float
    monthly_savings: float
    offset_percentages: OffsetPercentages

    def to_dict(self) -> dict[str, Any]:
        op = self.offset_percentages
        return {
            "dayLoad": self.day_load,
            "nightLoad": self.night_load,
            "solarToDay": self.solar_to_day,
            "solarExcess": self.solar_excess,
            "dayGridAfterSolar": self.day_grid_after_solar,
            "battSolarCharged": self.batt_solar_charged,
            "battGridCharged": self.batt_grid_charged,
            "battTotal": self.batt_total,
            "batteryDischargeByBucket": self.battery_discharge.to_dict(),
            "edgeCase": self.edge_case.value,
            "battTotalEffective": self.batt_total_effective,
            "effectiveCycles": self.effective_cycles,
            "solarUnused": self.solar_unused,
            "gridKWhByBucket": self.grid_kwh.to_dict(),
            "annualCostAfter": self.annual_cost_after,
            "annualSavings": self.annual_savings,
            "monthlySavings": self.monthly_savings,
            "offsetPercentages": {
                "solarDirect": op.solar_direct,
                "solarChargedBattery": op.solar_charged_battery,
                "gridChargedBattery": op.grid_charged_battery,
                "gridRemaining": op.grid_remaining,
            },
        }


def calculate_frd_peak_shaving(
    annual_usage_kwh: float,
    solar_production_kwh: float,
    battery: BatterySpec,
    rate_plan: RatePlan,
    distribution: UsageDistribution | None = None,
    ai_mode: bool = False,
    day_night_split: DayNightSplit = DEFAULT_DAY_NIGHT_SPLIT,
) -> FrdPeakShavingResult:
    u = non_negative(annual_usage_kwh)
    s = non_negative(solar_production_kwh)
    b = non_negative(battery.usable_kwh)
    if u <= 0:
        raise ValueError("Annual usage must be greater than zero")

    rates = rates_from_plan(rate_plan)
    usage = usage_from_distribution(u, distribution or default_distribution(rate_plan))
    baseline = cost_from_usage(usage, rates)

    # A
    day_load = u * day_night_split.p_day
    night_load = u * day_night_split.p_night

    # B
    solar_to_day = min(s, day_load)
    solar_excess = max(s - day_load, 0.0)
    day_grid_after_solar = max(day_load - solar_to_day, 0.0)
    after_solar = allocate_solar_to_periods(usage, solar_to_day, _SOLAR_ORDER).remaining_usage

    # C
    max_batt = b * DAYS_PER_YEAR
    batt_solar = min(solar_excess, max_batt, night_load)
    batt_grid = 0.0
    if ai_mode and rate_plan.has_ultra_low:
        headroom = max(max_batt - batt_solar, 0.0)
        batt_grid = max(0.0, min(headroom, night_load - batt_solar))
    batt_total = batt_solar + batt_grid

    # D
    remaining = after_solar.as_mapping()
    discharged: dict[Period, float] = {p: 0.0 for p in after_solar.periods()}
    left = batt_total
    for p in _DISCHARGE_ORDER:
        if left <= 0:
            break
        take = min(remaining.get(p, 0.0), left)
        if take <= 0:
            continue
        discharged[p] = take
        remaining[p] -= take
        left -= take
    battery_discharge = UsageBreakdown.zeros(ultra_low=after_solar.has_ultra_low).with_values(discharged)
    grid = after_solar.with_values(remaining)

    if batt_grid > 0:
        charge = Period.ULTRA_LOW if rates.ultra_low > 0 else Period.OFF_PEAK
        grid = grid.with_values({charge: grid.get(charge) + batt_grid})

    # E
    effective = battery_discharge.total
    edge_case = EdgeCase.NONE
    solar_unused = 0.0
    if u > s + max_batt:
        edge_case = EdgeCase.HIGH_USAGE
    elif s + max_batt > u:
        edge_case = EdgeCase.HIGH_CAPACITY
        solar_unused = max(s - solar_to_day - batt_solar, 0.0)
    effective_cycles = effective / b if b > 0 else 0.0

    # F
    cost_after = cost_from_usage(grid, rates)
    savings = baseline - cost_after
    grid_remaining = max(0.0, u - solar_to_day - effective)

    logger.debug("frd[%s]: solar_day=%.0f batt=%.0f/%.0f edge=%s savings=$%.2f",
                 rate_plan.id, solar_to_day, effective, batt_total, edge_case.value, savings)

    return FrdPeakShavingResult(
        day_load=day_load,
        night_load=night_load,
        solar_to_day=solar_to_day,
        solar_excess=solar_excess,
        day_grid_after_solar=day_grid_after_solar,
        batt_solar_charged=batt_solar,
        batt_grid_charged=batt_grid,
        batt_total=batt_total,
        battery_discharge=battery_discharge,
        edge_case=edge_case,
        batt_total_effective=effective,
        effective_cycles=effective_cycles,
        solar_unused=solar_unused,
        grid_kwh=grid,
        baseline_cost=baseline,
        annual_cost_after=cost_after,
        annual_savings=savings,
        monthly_savings=savings / 12,
        offset_percentages=OffsetPercentages(
            solar_direct=solar_to_day / u * 100,
            solar_charged_battery=batt_solar / u * 100,
            grid_charged_battery=batt_grid / u * 100,
            grid_remaining=grid_remaining / u * 100,
        ),
    )
