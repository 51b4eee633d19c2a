from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pse.catalog.distributions import UsageDistribution, default_distribution, usage_from_distribution
from pse.catalog.rate_plans import RatePlan, rates_from_plan
from pse.engine.policies import DAYS_PER_YEAR
from pse.engine.primitives import allocate_solar_to_periods, cost_from_usage, discharge_battery_to_periods
from pse.models import BatterySpec, Period, RateStructure, UsageBreakdown, non_negative

logger = logging.getLogger(__name__)

# Share of annual usage assumed to fall in daylight hours and be covered by panels.
DAYTIME_SOLAR_SHARE = 0.5

_DISCHARGE_ORDER = (Period.ON_PEAK, Period.MID_PEAK, Period.OFF_PEAK)
_SOLAR_ORDER = (Period.ON_PEAK, Period.MID_PEAK, Period.OFF_PEAK, Period.ULTRA_LOW)
_CHEAPEST_FIRST = (Period.ULTRA_LOW, Period.OFF_PEAK, Period.MID_PEAK, Period.ON_PEAK)


@dataclass(frozen=True)
class LeftoverEnergy:
    """Usage not covered by daytime solar or the night-time battery."""
    total_kwh: float
    consumption_percent: float
    cost: float
    cost_percent: float
    rate_per_kwh: float
    breakdown: UsageBreakdown


@dataclass(frozen=True)
class SimplePeakShavingResult:
    total_usage_kwh: float
    usage_by_period: UsageBreakdown
    original_cost_by_period: dict[Period, float]
    original_cost: float
    battery_annual_cycles: float
    battery_offsets: UsageBreakdown
    charge_period: Period
    new_cost_by_period: dict[Period, float]
    new_cost: float
    annual_savings: float
    savings_percent: float
    monthly_savings: float
    leftover: LeftoverEnergy

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalUsageKwh": self.total_usage_kwh,
            "usageByPeriod": self.usage_by_period.to_dict(),
            "originalCost": {**{p.key: v for p, v in self.original_cost_by_period.items()}, "total": self.original_cost},
            "batteryAnnualCycles": self.battery_annual_cycles,
            "batteryOffsets": self.battery_offsets.to_dict(),
            "newCost": {**{p.key: v for p, v in self.new_cost_by_period.items()}, "total": self.new_cost},
            "annualSavings": self.annual_savings,
            "savingsPercent": self.savings_percent,
            "monthlySavings": self.monthly_savings,
            "leftoverEnergy": {
                "totalKwh": self.leftover.total_kwh,
                "consumptionPercent": self.leftover.consumption_percent,
                "cost": self.leftover.cost,
                "costPercent": self.leftover.cost_percent,
                "ratePerKwh": self.leftover.rate_per_kwh,
                "breakdown": self.leftover.breakdown.to_dict(),
            },
        }


@dataclass(frozen=True)
class SolarOnlySavings:
    bill_before: float
    bill_after: float
    annual_savings: float
    usage_by_period: UsageBreakdown
    usage_after_solar: UsageBreakdown


def _cost_by_period(usage: UsageBreakdown, rates: RateStructure) -> dict[Period, float]:
    return {p: usage.get(p) * rates.get(p) for p in usage.periods()}


def _charge_period(rates: RateStructure) -> Period:
    return Period.ULTRA_LOW if rates.ultra_low > 0 else Period.OFF_PEAK


def _leftover_energy(
    annual: float,
    usage: UsageBreakdown,
    rates: RateStructure,
    battery_offset_total: float,
    solar_production_kwh: float | None,
    original_cost: float,
) -> LeftoverEnergy:
    daytime = annual * DAYTIME_SOLAR_SHARE
    night = min(max(0.0, non_negative(solar_production_kwh) - daytime), battery_offset_total)
    covered = min(annual, daytime + night)
    leftover = max(0.0, annual - covered)

    # Cheapest periods absorb the leftover first, each up to its own usage.
    fill: dict[Period, float] = {}
    remaining = leftover
    for p in _CHEAPEST_FIRST:
        if p is Period.ULTRA_LOW and rates.ultra_low <= 0:
            continue
        take = min(remaining, usage.get(p))
        fill[p] = take
        remaining -= take
    breakdown = UsageBreakdown.zeros(ultra_low=True).with_values(fill)
    cost = cost_from_usage(breakdown, rates)

    return LeftoverEnergy(
        total_kwh=leftover,
        consumption_percent=leftover / annual * 100 if annual > 0 else 0.0,
        cost=cost,
        cost_percent=cost / original_cost * 100 if original_cost > 0 else 0.0,
        rate_per_kwh=cost / leftover if leftover > 0 else 0.0,
        breakdown=breakdown,
    )


def calculate_simple_peak_shaving(
    annual_usage_kwh: float,
    battery: BatterySpec,
    rate_plan: RatePlan,
    distribution: UsageDistribution | None = None,
    solar_production_kwh: float | None = None,
) -> SimplePeakShavingResult:
    """
    Battery-only peak shaving on a fixed usage distribution.

    One full cycle a day; discharge on -> mid -> off-peak and recharge from
    the grid at the cheapest rate (ultra-low when the plan has it).
    """
    annual = non_negative(annual_usage_kwh)
    rates = rates_from_plan(rate_plan)
    usage = usage_from_distribution(annual, distribution or default_distribution(rate_plan))

    original_by_period = _cost_by_period(usage, rates)
    original_cost = sum(original_by_period.values())

    cycles_kwh = battery.usable_kwh * DAYS_PER_YEAR
    discharge = discharge_battery_to_periods(usage, cycles_kwh, _DISCHARGE_ORDER)
    offset_total = discharge.battery_offsets.total

    charge_period = _charge_period(rates)
    grid = discharge.remaining_usage
    grid = grid.with_values({charge_period: grid.get(charge_period) + offset_total})
    new_by_period = _cost_by_period(grid, rates)
    new_cost = sum(new_by_period.values())

    savings = original_cost - new_cost
    logger.debug("simple[%s]: %.0f kWh shaved, charged at %s, savings=$%.2f",
                 rate_plan.id, offset_total, charge_period.value, savings)

    return SimplePeakShavingResult(
        total_usage_kwh=annual,
        usage_by_period=usage,
        original_cost_by_period=original_by_period,
        original_cost=original_cost,
        battery_annual_cycles=cycles_kwh,
        battery_offsets=discharge.battery_offsets,
        charge_period=charge_period,
        new_cost_by_period=new_by_period,
        new_cost=new_cost,
        annual_savings=savings,
        savings_percent=savings / original_cost * 100 if original_cost > 0 else 0.0,
        monthly_savings=savings / 12,
        leftover=_leftover_energy(annual, usage, rates, offset_total, solar_production_kwh, original_cost),
    )


def calculate_solar_only_savings(
    annual_usage_kwh: float,
    solar_production_kwh: float,
    rate_plan: RatePlan,
    distribution: UsageDistribution | None = None,
) -> SolarOnlySavings:
    """Bill before and after solar, offsetting the most expensive periods first."""
    rates = rates_from_plan(rate_plan)
    usage = usage_from_distribution(non_negative(annual_usage_kwh), distribution or default_distribution(rate_plan))
    alloc = allocate_solar_to_periods(usage, non_negative(solar_production_kwh), _SOLAR_ORDER)
    before = cost_from_usage(usage, rates)
    after = cost_from_usage(alloc.remaining_usage, rates)
    return SolarOnlySavings(
        bill_before=before,
        bill_after=after,
        annual_savings=before - after,
        usage_by_period=usage,
        usage_after_solar=alloc.remaining_usage,
    )
