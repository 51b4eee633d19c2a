from __future__ import annotations

import math
from dataclasses import dataclass

import pandas as pd

from pse.config import settings


@dataclass(frozen=True)
class YearProjection:
    year: int
    annual_savings: float
    cumulative_savings: float
    rate_multiplier: float
    degradation_multiplier: float = 1.0


@dataclass(frozen=True)
class MultiYearProjection:
    years: list[YearProjection]
    total_savings: float
    net_cost: float
    payback_years: float  # math.inf when cumulative savings never reach the net cost
    net_profit: float
    annual_roi: float | None  # percent; None when net cost <= 0
    rate_escalation: float
    system_degradation: float = 0.0
    offset_cap_fraction: float | None = None

    @property
    def annual_roi_label(self) -> str:
        return "N/A" if self.annual_roi is None else f"{self.annual_roi:.1f}"

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([
            {
                "year": y.year,
                "annual_savings": y.annual_savings,
                "cumulative_savings": y.cumulative_savings,
                "rate_multiplier": y.rate_multiplier,
                "degradation_multiplier": y.degradation_multiplier,
            }
            for y in self.years
        ])


def _payback_crossing(cumulative: float, annual: float, net: float, year: int) -> float:
    previous = cumulative - annual
    return year - 1 + (net - previous) / annual


def calculate_combined_multi_year(
    first_year_savings: float,
    net_cost: float,
    rate_escalation: float | None = None,
    system_degradation: float | None = None,
    years: int | None = None,
    baseline_annual_bill: float | None = None,
    offset_cap_fraction: float | None = None,
) -> MultiYearProjection:
    """
    Project solar + battery savings with rate escalation and system degradation.

    With a baseline bill, each year's savings are capped at
    ``baseline * rate_multiplier * cap``; the cap defaults to the first-year
    savings share of the baseline bill.
    """
    esc = settings.rate_escalation if rate_escalation is None else rate_escalation
    deg = settings.system_degradation if system_degradation is None else system_degradation
    n = settings.projection_years if years is None else years
    eligible = max(0.0, net_cost)

    cap: float | None = None
    if offset_cap_fraction is not None:
        cap = min(max(offset_cap_fraction, 0.0), 1.0)
    elif baseline_annual_bill and baseline_annual_bill > 0:
        cap = 0.0 if first_year_savings <= 0 else min(first_year_savings / baseline_annual_bill, 1.0)

    rows: list[YearProjection] = []
    cumulative = 0.0
    payback = math.inf
    for year in range(1, n + 1):
        rate_mult = (1 + esc) ** (year - 1)
        deg_mult = (1 - deg) ** (year - 1)
        annual = max(0.0, first_year_savings * rate_mult * deg_mult)
        if baseline_annual_bill and baseline_annual_bill > 0 and cap is not None:
            annual = min(annual, baseline_annual_bill * rate_mult * cap)
        cumulative += annual
        if math.isinf(payback) and annual > 0 and cumulative >= eligible:
            payback = _payback_crossing(cumulative, annual, eligible, year)
        rows.append(YearProjection(year, annual, cumulative, rate_mult, deg_mult))

    net_profit = cumulative - net_cost
    return MultiYearProjection(
        years=rows,
        total_savings=cumulative,
        net_cost=net_cost,
        payback_years=payback,
        net_profit=net_profit,
        annual_roi=None if net_cost <= 0 or n <= 0 else net_profit / net_cost / n * 100,
        rate_escalation=esc,
        system_degradation=deg,
        offset_cap_fraction=cap,
    )


def calculate_simple_multi_year(
    first_year_savings: float,
    net_cost: float,
    rate_escalation: float | None = None,
    years: int | None = None,
) -> MultiYearProjection:
    """Battery-only projection: escalation without degradation. Payback is 0 when net cost <= 0."""
    esc = settings.rate_escalation if rate_escalation is None else rate_escalation
    n = settings.projection_years if years is None else years
    eligible = max(0.0, net_cost)

    rows: list[YearProjection] = []
    cumulative = 0.0
    payback = 0.0 if net_cost <= 0 else math.inf
    for year in range(1, n + 1):
        rate_mult = (1 + esc) ** (year - 1)
        annual = first_year_savings * rate_mult
        cumulative += annual
        if math.isinf(payback) and annual > 0 and cumulative >= eligible:
            payback = _payback_crossing(cumulative, annual, eligible, year)
        rows.append(YearProjection(year, annual, cumulative, rate_mult))

    net_profit = cumulative - net_cost
    return MultiYearProjection(
        years=rows,
        total_savings=cumulative,
        net_cost=net_cost,
        payback_years=payback,
        net_profit=net_profit,
        annual_roi=None if net_cost <= 0 or n <= 0 else net_profit / net_cost / n * 100,
        rate_escalation=esc,
    )
