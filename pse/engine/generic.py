from __future__ import annotations

import logging
from typing import Any

from pse.engine.policies import DEFAULT_GENERIC_POLICY, GenericPolicy
from pse.engine.primitives import (
    allocate_solar_to_periods,
    cost_from_usage,
    discharge_battery_to_periods,
)
from pse.models import FormulaResult, GenericFormulaInput, non_negative

logger = logging.getLogger(__name__)


def apply_generic_formula(
    inputs: GenericFormulaInput | None = None,
    *,
    policy: GenericPolicy = DEFAULT_GENERIC_POLICY,
    **kwargs: Any,
) -> FormulaResult:
    """
    Fallback formula for rate plans without a dedicated model.

    Solar shaves the most expensive periods first with no cap beyond what is
    produced. The battery then discharges its full annual budget
    (usable kWh x cycles) and is assumed to recharge from the grid at the
    cheapest tariff, which is added back to the bill.
    """
    if inputs is None:
        inputs = GenericFormulaInput(**kwargs)

    usage = inputs.usage_original.sanitized()
    solar = non_negative(inputs.solar_production_kwh)
    budget = non_negative(inputs.battery.usable_kwh) * policy.cycles_per_year

    after_solar = allocate_solar_to_periods(usage, solar, policy.solar_order)
    usage_after_solar = after_solar.remaining_usage
    post_solar_bill = cost_from_usage(usage_after_solar, inputs.rates)

    discharge = discharge_battery_to_periods(usage_after_solar, budget, policy.discharge_order)
    recharge_cost = discharge.battery_offsets.total * inputs.rates.cheapest_charge_rate()
    post_battery_bill = cost_from_usage(discharge.remaining_usage, inputs.rates) + recharge_cost

    logger.debug(
        "generic: solar=%.1f kWh used=%.1f kWh battery budget=%.1f kWh recharge=$%.2f",
        solar, solar - after_solar.remaining_solar, budget, recharge_cost,
    )
    return FormulaResult(
        post_solar_annual_bill=post_solar_bill,
        post_solar_battery_annual_bill=post_battery_bill,
        battery_offsets=discharge.battery_offsets,
        usage_after_solar=usage_after_solar,
        usage_after_battery=discharge.remaining_usage,
        solar_used_for_load=solar - after_solar.remaining_solar,
    )
