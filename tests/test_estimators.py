import math

import pandas as pd
import pytest

from pse.catalog.batteries import find_battery
from pse.catalog.distributions import DayNightSplit
from pse.catalog.rate_plans import TOU_RATE_PLAN, ULO_RATE_PLAN
from pse.config import settings
from pse.engine.registry import FormulaKind
from pse.estimators.combined import calculate_solar_battery_combined, compare_rate_plans
from pse.estimators.frd import EdgeCase, calculate_frd_peak_shaving
from pse.estimators.projection import calculate_combined_multi_year, calculate_simple_multi_year
from pse.estimators.simple import calculate_simple_peak_shaving, calculate_solar_only_savings
from pse.models import Period

ULO_BASELINE = 2600 * 0.039 + 2300 * 0.098 + 3310 * 0.157 + 1790 * 0.391
TOU_BASELINE = 6300 * 0.098 + 1800 * 0.157 + 1900 * 0.203


# ==================== COMBINED ====================

def test_combined_ulo(battery_20):
    est = calculate_solar_battery_combined(10_000, 8_000, battery_20, ULO_RATE_PLAN, ai_mode=True)
    assert est.formula is FormulaKind.ULO
    assert est.baseline_annual_bill == pytest.approx(ULO_BASELINE)
    assert est.post_solar_annual_bill == pytest.approx(365.9)
    assert est.post_solar_battery_annual_bill == pytest.approx(195.0)
    assert est.combined_annual_savings == pytest.approx(ULO_BASELINE - 195.0)
    assert est.solar_only_savings + est.battery_on_top_savings == pytest.approx(est.combined_annual_savings)
    assert est.breakdown()["batteryChargeFromUltraLow"] == pytest.approx(2400)


def test_combined_offset_cap_fraction_limits_savings(battery_20):
    est = calculate_solar_battery_combined(
        10_000, 8_000, battery_20, ULO_RATE_PLAN, offset_cap_fraction=0.8, ai_mode=True,
    )
    assert est.combined_annual_savings == pytest.approx(ULO_BASELINE * 0.8)
    assert est.uncapped_annual_savings == pytest.approx(ULO_BASELINE - 195.0)
    assert est.post_solar_battery_annual_bill == pytest.approx(ULO_BASELINE * 0.2)
    assert est.combined_monthly_savings == pytest.approx(ULO_BASELINE * 0.8 / 12)


def test_combined_tou_breakdown(battery_10):
    est = calculate_solar_battery_combined(10_000, 4_000, battery_10, TOU_RATE_PLAN)
    assert est.formula is FormulaKind.TOU
    d = est.to_dict()
    assert d["planId"] == "tou"
    assert d["breakdown"]["solarCapKwh"] == pytest.approx(4_000)
    assert d["breakdown"]["batteryChargeFromOffPeak"] == 0


def test_compare_rate_plans_returns_frame(battery_20):
    df = compare_rate_plans(10_000, 8_000, battery_20)
    assert isinstance(df, pd.DataFrame)
    assert list(df["plan"]) == ["ulo", "tou"]
    assert (df["annual_savings"] >= 0).all()
    assert (df["post_solar_battery_bill"] <= df["baseline_bill"]).all()


# ==================== SIMPLE ====================

def test_simple_peak_shaving_tou():
    res = calculate_simple_peak_shaving(10_000, find_battery("renon-16"), TOU_RATE_PLAN)
    assert res.original_cost == pytest.approx(TOU_BASELINE)
    assert res.battery_annual_cycles == pytest.approx(5256)
    assert res.battery_offsets.on_peak == pytest.approx(1900)
    assert res.battery_offsets.off_peak == pytest.approx(1556)
    assert res.charge_period is Period.OFF_PEAK
    assert res.new_cost == pytest.approx(980.0)
    assert res.annual_savings == pytest.approx(TOU_BASELINE - 980.0)
    assert res.monthly_savings == pytest.approx(res.annual_savings / 12)
    # half the usage is daytime solar; the rest falls into off-peak
    assert res.leftover.total_kwh == pytest.approx(5000)
    assert res.leftover.breakdown.off_peak == pytest.approx(5000)
    assert res.leftover.rate_per_kwh == pytest.approx(0.098)


def test_simple_peak_shaving_ulo_charges_at_ultra_low():
    res = calculate_simple_peak_shaving(10_000, find_battery("renon-16"), ULO_RATE_PLAN)
    assert res.charge_period is Period.ULTRA_LOW
    assert res.new_cost == pytest.approx(7856 * 0.039 + 2144 * 0.098)
    assert res.to_dict()["newCost"]["total"] == pytest.approx(res.new_cost)


def test_simple_leftover_uses_night_solar():
    res = calculate_simple_peak_shaving(
        10_000, find_battery("renon-16"), TOU_RATE_PLAN, solar_production_kwh=8_000,
    )
    assert res.leftover.total_kwh == pytest.approx(2000)
    assert res.leftover.consumption_percent == pytest.approx(20)


def test_solar_only_savings():
    res = calculate_solar_only_savings(10_000, 3_000, TOU_RATE_PLAN)
    assert res.bill_before == pytest.approx(TOU_BASELINE)
    assert res.bill_after == pytest.approx(6300 * 0.098 + 700 * 0.157)
    assert res.usage_after_solar.on_peak == 0


# ==================== FRD ====================

def test_frd_day_night_split(battery_factory):
    res = calculate_frd_peak_shaving(10_000, 5_000, battery_factory(16), TOU_RATE_PLAN)
    assert (res.day_load, res.night_load) == (5000, 5000)
    res = calculate_frd_peak_shaving(
        10_000, 5_000, battery_factory(16), TOU_RATE_PLAN, day_night_split=DayNightSplit(0.6, 0.4),
    )
    assert (res.day_load, res.night_load) == (6000, 4000)


def test_frd_solar_and_battery_charging(battery_factory):
    res = calculate_frd_peak_shaving(10_000, 6_000, battery_factory(16), TOU_RATE_PLAN)
    assert res.solar_to_day == 5000
    assert res.solar_excess == 1000
    assert res.day_grid_after_solar == 0
    assert res.batt_solar_charged == 1000
    assert res.batt_grid_charged == 0


def test_frd_grid_charging_needs_ai_mode_and_ultra_low(battery_factory):
    b = battery_factory(16)
    assert calculate_frd_peak_shaving(10_000, 3_000, b, ULO_RATE_PLAN).batt_grid_charged == 0
    assert calculate_frd_peak_shaving(10_000, 3_000, b, TOU_RATE_PLAN, ai_mode=True).batt_grid_charged == 0

    res = calculate_frd_peak_shaving(10_000, 3_000, b, ULO_RATE_PLAN, ai_mode=True)
    assert res.batt_grid_charged == pytest.approx(5000)
    assert res.batt_total <= 16 * 365
    assert res.grid_kwh.ultra_low == pytest.approx(7000)
    assert res.annual_cost_after == pytest.approx(7000 * 0.039)


def test_frd_high_usage(battery_factory):
    res = calculate_frd_peak_shaving(30_000, 10_000, battery_factory(16), TOU_RATE_PLAN)
    assert res.edge_case is EdgeCase.HIGH_USAGE
    assert res.grid_kwh.total > 0


def test_frd_high_capacity(battery_factory):
    res = calculate_frd_peak_shaving(10_000, 15_000, battery_factory(32), TOU_RATE_PLAN)
    assert res.edge_case is EdgeCase.HIGH_CAPACITY
    assert res.solar_to_day + res.batt_total_effective <= 10_000 + 1e-9
    assert 0 < res.effective_cycles <= 365
    assert res.solar_unused == pytest.approx(5000)
    assert res.annual_cost_after == pytest.approx(0)
    assert res.annual_savings == pytest.approx(TOU_BASELINE)
    assert res.offset_percentages.grid_remaining == pytest.approx(0)


def test_frd_rejects_zero_usage(battery_factory):
    with pytest.raises(ValueError):
        calculate_frd_peak_shaving(0, 5_000, battery_factory(16), TOU_RATE_PLAN)


# ==================== PROJECTIONS ====================

def test_combined_multi_year_flat():
    proj = calculate_combined_multi_year(1000, 5000, rate_escalation=0, system_degradation=0, years=10)
    assert proj.payback_years == pytest.approx(5.0)
    assert proj.total_savings == pytest.approx(10_000)
    assert proj.net_profit == pytest.approx(5000)
    assert proj.annual_roi == pytest.approx(10.0)
    assert proj.annual_roi_label == "10.0"


def test_combined_multi_year_never_pays_back():
    proj = calculate_combined_multi_year(100, 1_000_000, years=5)
    assert math.isinf(proj.payback_years)


def test_combined_multi_year_cap_fraction():
    proj = calculate_combined_multi_year(
        1000, 5000, rate_escalation=0.05, system_degradation=0, years=3,
        baseline_annual_bill=2000, offset_cap_fraction=0.25,
    )
    assert proj.years[0].annual_savings == pytest.approx(500)
    assert proj.years[2].annual_savings == pytest.approx(500 * 1.05 ** 2)


def test_combined_multi_year_default_cap_from_baseline():
    proj = calculate_combined_multi_year(1000, 5000, baseline_annual_bill=2000, years=2)
    assert proj.offset_cap_fraction == pytest.approx(0.5)


def test_non_positive_net_cost():
    proj = calculate_combined_multi_year(1000, 0, years=5)
    assert proj.payback_years == 0
    assert proj.annual_roi is None
    assert proj.annual_roi_label == "N/A"


def test_simple_multi_year():
    proj = calculate_simple_multi_year(1000, 2500, rate_escalation=0, years=5)
    assert proj.payback_years == pytest.approx(2.5)
    assert calculate_simple_multi_year(500, -100, years=3).payback_years == 0


def test_projection_frame_uses_settings_horizon():
    df = calculate_simple_multi_year(100, 100).to_frame()
    assert len(df) == settings.projection_years
    assert list(df.columns) == [
        "year", "annual_savings", "cumulative_savings", "rate_multiplier", "degradation_multiplier",
    ]
