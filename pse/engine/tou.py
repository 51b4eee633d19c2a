from __future__ import annotations

import logging
from typing import Any

from pse.engine.policies import DEFAULT_TOU_POLICY, TouPolicy
from pse.engine.primitives import (
    allocate_solar_to_periods,
    cost_from_usage,
    discharge_battery_to_periods,
)
from pse.models import FormulaResult, Period, TouFormulaInput, UsageBreakdown, non_negative

logger = logging.getLogger(__name__)


def _weighted_solar(
    usage: UsageBreakdown,
    solar_cap: float,
    policy: TouPolicy,
) -> tuple[UsageBreakdown, UsageBreakdown]:
    """
    Spread capped solar by target shares, then sweep any leftover.

    Returns (solar_allocation, usage_after_solar).
    """
    allocation: dict[Period, float] = {p: 0.0 for p in (Period.OFF_PEAK, Period.MID_PEAK, Period.ON_PEAK)}
    remaining = usage.as_mapping()
    solar_left = solar_cap

    for p in policy.weighted_order:
        if solar_left <= 0:
            break
        share = policy.weights.share(p)
        if share <= 0:
            continue
        available = remaining.get(p, 0.0)
        applied = min(available, solar_cap * share, solar_left)
        allocation[p] = allocation.get(p, 0.0) + applied
        remaining[p] = available - applied
        solar_left -= applied

    if solar_left > 0:
        sweep = allocate_solar_to_periods(usage.with_values(remaining), solar_left, policy.sweep_order)
        for p in allocation:
            allocation[p] += sweep.solar_allocation.get(p)
        remaining = sweep.remaining_usage.as_mapping()

    # Solar lands on daytime periods only; the ultra-low slot stays at zero.
    solar_allocation = UsageBreakdown.zeros(ultra_low=False).with_values(allocation)
    return solar_allocation, usage.with_values(remaining)


def apply_tou_formula(
    inputs: TouFormulaInput | None = None,
    *,
    policy: TouPolicy = DEFAULT_TOU_POLICY,
    **kwargs: Any,
) -> FormulaResult:
    """
    Time-of-use formula.

    Solar applied to load is capped at half of annual usage and distributed by
    target shares. Without AI mode the battery can only be charged from the
    solar left over; with AI mode it may use its full annual budget and the
    grid-sourced part of the charge is billed at the off-peak rate.
    """
    if inputs is None:
        inputs = TouFormulaInput(**kwargs)

    usage = inputs.usage_original.sanitized()
    annual = non_negative(inputs.annual_usage_kwh)
    production = non_negative(inputs.solar_production_kwh)
    capacity = non_negative(inputs.battery.usable_kwh) * policy.cycles_per_year

    solar_cap = min(annual * policy.solar_cap_percent, production)
    solar_allocation, usage_after_solar = _weighted_solar(usage, solar_cap, policy)
    post_solar_bill = cost_from_usage(usage_after_solar, inputs.rates)

    solar_used = solar_allocation.total
    solar_excess = max(0.0, solar_cap - solar_used)
    battery_from_solar = min(solar_excess, capacity)
    budget = capacity if inputs.ai_mode else battery_from_solar

    discharge = discharge_battery_to_periods(usage_after_solar, budget, policy.discharge_order)
    usage_after_battery = discharge.remaining_usage

    charge_required = discharge.battery_offsets.total
    grid_charged = 0.0
    if inputs.ai_mode:
        grid_charged = max(0.0, charge_required - min(solar_excess, charge_required))
        usage_after_battery = usage_after_battery.with_values(
            {Period.OFF_PEAK: usage_after_battery.off_peak + grid_charged}
        )

    logger.debug(
        "tou: cap=%.1f used=%.1f excess=%.1f budget=%.1f grid charge=%.1f (ai_mode=%s)",
        solar_cap, solar_used, solar_excess, budget, grid_charged, inputs.ai_mode,
    )
    return FormulaResult(
        post_solar_annual_bill=post_solar_bill,
        post_solar_battery_annual_bill=cost_from_usage(usage_after_battery, inputs.rates),
        battery_offsets=discharge.battery_offsets,
        usage_after_solar=usage_after_solar,
        usage_after_battery=usage_after_battery,
        solar_used_for_load=solar_used,
        solar_allocation=solar_allocation,
        battery_charge_from_off_peak=grid_charged,
        solar_cap=solar_cap,
    )
