"""
Ultra-Low Overnight (ULO) formula, FRD-compliant.

Two virtual battery sources feed the annual discharge budget:

* solar-charged: the solar left after direct self-consumption, bounded by a
  usage-scaled target and the summer/winter and annual caps;
* ULO-charged (AI mode only): grid energy bought in the ultra-low window,
  bounded by a usage-scaled target and its own annual cap.

The ULO-charged share of the discharge is booked as ultra-low usage, then the
regulatory constraints run in a fixed order: the total offset is capped
(proportional reduction) and then the grid-purchase floor is enforced
(off-peak first clawback).
"""
from __future__ import annotations

import logging
from typing import Any

from pse.engine.policies import ULO_FRD_CONSTANTS, UloPolicy
from pse.engine.primitives import (
    allocate_solar_to_periods,
    cap_total_offset,
    cost_from_usage,
    discharge_battery_to_periods,
    enforce_minimum_grid_purchases,
)
from pse.models import FormulaResult, Period, UloFormulaInput, non_negative

logger = logging.getLogger(__name__)


def apply_ulo_formula(
    inputs: UloFormulaInput | None = None,
    *,
    policy: UloPolicy = ULO_FRD_CONSTANTS,
    **kwargs: Any,
) -> FormulaResult:
    """Ultra-low overnight formula: direct solar, then battery discharge, then the offset cap and grid floor."""
    if inputs is None:
        inputs = UloFormulaInput(**kwargs)

    usage = inputs.usage_original.sanitized()
    annual = non_negative(inputs.annual_usage_kwh)
    production = non_negative(inputs.solar_production_kwh)
    max_battery_output = non_negative(inputs.battery.usable_kwh) * policy.cycles_per_year
    min_grid_kwh = annual * policy.min_grid_purchases_percent

    solar_cap = min(annual * policy.solar_cap_percent, production)
    scale = annual / policy.baseline_usage_kwh if policy.baseline_usage_kwh > 0 else 0.0
    target_solar_direct = min(annual * policy.target_solar_direct_percent, solar_cap)
    target_solar_to_battery = min(
        annual * policy.target_solar_to_battery_percent * scale,
        policy.max_solar_to_battery_kwh,
        policy.seasonal_solar_to_battery_kwh,
    )
    target_ulo_to_battery = min(
        annual * policy.target_ulo_to_battery_percent * scale,
        policy.max_ulo_to_battery_kwh,
    )

    direct = allocate_solar_to_periods(usage, target_solar_direct, policy.solar_order)
    usage_after_solar = direct.remaining_usage
    post_solar_bill = cost_from_usage(usage_after_solar, inputs.rates)

    solar_used = direct.solar_allocation.total
    solar_excess = max(0.0, solar_cap - solar_used)
    battery_from_solar = min(solar_excess, target_solar_to_battery, policy.max_solar_to_battery_kwh)
    battery_from_ulo = min(target_ulo_to_battery, policy.max_ulo_to_battery_kwh) if inputs.ai_mode else 0.0
    budget = min(battery_from_solar + battery_from_ulo, max_battery_output)

    discharge = discharge_battery_to_periods(usage_after_solar, budget, policy.discharge_order)

    discharged = discharge.battery_offsets.total
    solar_charged = min(battery_from_solar, discharged)
    ulo_charged = min(discharged - solar_charged, battery_from_ulo) if inputs.ai_mode else 0.0
    usage_after_battery = discharge.remaining_usage
    if ulo_charged > 0:
        usage_after_battery = usage_after_battery.with_values(
            {Period.ULTRA_LOW: usage_after_battery.get(Period.ULTRA_LOW) + ulo_charged}
        )

    # cap before floor: the floor claws back from already-capped offsets
    capped = cap_total_offset(
        usage_after_battery,
        discharge.battery_offsets,
        solar_used,
        annual,
        policy.max_offset_percent,
    )
    final = enforce_minimum_grid_purchases(capped.usage_after_battery, capped.battery_offsets, min_grid_kwh)

    logger.debug(
        "ulo: cap=%.1f direct=%.1f from_solar=%.1f from_ulo=%.1f budget=%.1f discharged=%.1f ulo_charged=%.1f",
        solar_cap, solar_used, battery_from_solar, battery_from_ulo, budget, discharged, ulo_charged,
    )
    return FormulaResult(
        post_solar_annual_bill=post_solar_bill,
        post_solar_battery_annual_bill=cost_from_usage(final.usage_after_battery, inputs.rates),
        battery_offsets=final.battery_offsets,
        usage_after_solar=usage_after_solar,
        usage_after_battery=final.usage_after_battery,
        solar_used_for_load=solar_used,
        solar_allocation=direct.solar_allocation,
        battery_charge_required=ulo_charged,
        solar_cap=solar_cap,
    )
