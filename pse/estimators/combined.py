from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import pandas as pd

from pse.catalog.distributions import UsageDistribution, default_distribution, usage_from_distribution
from pse.catalog.rate_plans import RatePlan, list_rate_plans, rates_from_plan
from pse.engine.primitives import cost_from_usage
from pse.engine.registry import FormulaKind, formula_for_plan, run_formula
from pse.models import BatterySpec, FormulaResult, UsageBreakdown, non_negative

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CombinedEstimate:
    plan_id: str
    formula: FormulaKind
    baseline_annual_bill: float
    post_solar_annual_bill: float
    post_solar_battery_annual_bill: float
    solar_only_savings: float
    battery_on_top_savings: float
    combined_annual_savings: float
    uncapped_annual_savings: float
    usage_original: UsageBreakdown
    result: FormulaResult
    offset_cap_fraction: float | None = None

    @property
    def combined_monthly_savings(self) -> float:
        return self.combined_annual_savings / 12

    def breakdown(self) -> dict[str, Any] | None:
        """Per-period detail for the dedicated TOU/ULO models (None for the generic fallback)."""
        if self.formula is FormulaKind.GENERIC:
            return None
        r = self.result
        out: dict[str, Any] = {
            "originalUsage": self.usage_original.to_dict(),
            "usageAfterSolar": r.usage_after_solar.to_dict(),
            "usageAfterBattery": r.usage_after_battery.to_dict(),
            "solarAllocation": r.solar_allocation.to_dict() if r.solar_allocation else None,
            "batteryOffsets": r.battery_offsets.to_dict(),
            "solarCapKwh": r.solar_cap,
        }
        if self.formula is FormulaKind.ULO:
            out["batteryChargeFromUltraLow"] = r.battery_charge_required
        else:
            out["batteryChargeFromOffPeak"] = r.battery_charge_from_off_peak
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "planId": self.plan_id,
            "formula": self.formula.value,
            "baselineAnnualBill": self.baseline_annual_bill,
            "postSolarAnnualBill": self.post_solar_annual_bill,
            "postSolarBatteryAnnualBill": self.post_solar_battery_annual_bill,
            "solarOnlySavings": self.solar_only_savings,
            "batteryOnTopSavings": self.battery_on_top_savings,
            "combinedAnnualSavings": self.combined_annual_savings,
            "combinedMonthlySavings": self.combined_monthly_savings,
            "uncappedAnnualSavings": self.uncapped_annual_savings,
            "breakdown": self.breakdown(),
        }


def _clamp_fraction(value: float | None) -> float | None:
    if value is None:
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    if v != v or v in (float("inf"), float("-inf")):
        return None
    return min(max(v, 0.0), 1.0)


def calculate_solar_battery_combined(
    annual_usage_kwh: float,
    solar_production_kwh: float,
    battery: BatterySpec,
    rate_plan: RatePlan,
    distribution: UsageDistribution | None = None,
    offset_cap_fraction: float | None = None,
    ai_mode: bool = False,
) -> CombinedEstimate:
    """
    Baseline vs. solar vs. solar + battery bills for one rate plan.

    When ``offset_cap_fraction`` is given (e.g. from the roof-geometry
    estimator), combined savings are limited to that share of the baseline
    bill; the uncapped figure is kept alongside.
    """
    annual = non_negative(annual_usage_kwh)
    dist = distribution or default_distribution(rate_plan)
    rates = rates_from_plan(rate_plan)
    usage_original = usage_from_distribution(annual, dist)
    baseline = cost_from_usage(usage_original, rates)

    descriptor = formula_for_plan(rate_plan.id)
    result = run_formula(
        rate_plan.id,
        annual_usage_kwh=annual,
        solar_production_kwh=solar_production_kwh,
        battery=battery,
        usage_original=usage_original,
        rates=rates,
        ai_mode=ai_mode,
    )

    solar_only = baseline - result.post_solar_annual_bill
    battery_on_top = result.post_solar_annual_bill - result.post_solar_battery_annual_bill
    uncapped = baseline - result.post_solar_battery_annual_bill

    cap = _clamp_fraction(offset_cap_fraction)
    combined = min(uncapped, baseline * cap) if cap is not None else uncapped

    logger.debug("combined[%s/%s]: baseline=$%.2f savings=$%.2f (cap=%s)",
                 rate_plan.id, descriptor.kind.value, baseline, combined, cap)
    return CombinedEstimate(
        plan_id=rate_plan.id,
        formula=descriptor.kind,
        baseline_annual_bill=baseline,
        post_solar_annual_bill=result.post_solar_annual_bill,
        post_solar_battery_annual_bill=max(0.0, baseline - combined),
        solar_only_savings=solar_only,
        battery_on_top_savings=battery_on_top,
        combined_annual_savings=combined,
        uncapped_annual_savings=uncapped,
        usage_original=usage_original,
        result=result,
        offset_cap_fraction=cap,
    )


def compare_rate_plans(
    annual_usage_kwh: float,
    solar_production_kwh: float,
    battery: BatterySpec,
    plans: Iterable[RatePlan] | None = None,
    *,
    offset_cap_fraction: float | None = None,
    ai_mode: bool = False,
) -> pd.DataFrame:
    """One row per plan, each using its own default usage distribution."""
    rows: list[dict[str, Any]] = []
    for plan in plans or list_rate_plans():
        est = calculate_solar_battery_combined(
            annual_usage_kwh,
            solar_production_kwh,
            battery,
            plan,
            offset_cap_fraction=offset_cap_fraction,
            ai_mode=ai_mode,
        )
        rows.append({
            "plan": plan.id,
            "formula": est.formula.value,
            "baseline_bill": est.baseline_annual_bill,
            "post_solar_bill": est.post_solar_annual_bill,
            "post_solar_battery_bill": est.post_solar_battery_annual_bill,
            "annual_savings": est.combined_annual_savings,
            "monthly_savings": est.combined_monthly_savings,
        })
    return pd.DataFrame(rows)
