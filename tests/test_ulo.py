from dataclasses import replace

import pytest

from pse.engine.policies import ULO_FRD_CONSTANTS
from pse.engine.ulo import apply_ulo_formula
from pse.models import UloFormulaInput, UsageBreakdown


def _run(usage, rates, battery, solar, ai_mode=False, **kw):
    return apply_ulo_formula(
        UloFormulaInput(
            annual_usage_kwh=usage.total,
            solar_production_kwh=solar,
            battery=battery,
            usage_original=usage,
            rates=rates,
            ai_mode=ai_mode,
        ),
        **kw,
    )


def test_direct_solar_mid_peak_first(ulo_usage, ulo_rates, battery_20):
    res = _run(ulo_usage, ulo_rates, battery_20, 8000)
    assert res.solar_cap == pytest.approx(5000)
    assert res.solar_allocation.mid_peak == pytest.approx(3310)
    assert res.solar_allocation.on_peak == pytest.approx(1690)
    assert res.post_solar_annual_bill == pytest.approx(2600 * 0.039 + 2300 * 0.098 + 100 * 0.391)


def test_no_ai_mode_no_grid_charging(ulo_usage, ulo_rates, battery_20):
    res = _run(ulo_usage, ulo_rates, battery_20, 8000)
    assert res.battery_charge_required == 0
    assert res.battery_offsets.total == 0


def test_ai_mode_keeps_grid_floor(ulo_usage, ulo_rates, battery_20):
    res = _run(ulo_usage, ulo_rates, battery_20, 8000, ai_mode=True)
    assert res.battery_offsets.on_peak == pytest.approx(100)
    assert res.battery_offsets.off_peak == pytest.approx(2300)
    assert res.battery_charge_required == pytest.approx(2400)
    assert res.usage_after_battery.ultra_low == pytest.approx(5000)
    assert res.usage_after_battery.total >= 1000
    assert res.post_solar_battery_annual_bill == pytest.approx(5000 * 0.039)
    assert res.post_solar_battery_annual_bill <= res.post_solar_annual_bill


def test_cap_then_floor_order(ulo_usage, ulo_rates, battery_20):
    policy = replace(
        ULO_FRD_CONSTANTS,
        target_solar_direct_percent=0.2,
        max_offset_percent=0.6,
        min_grid_purchases_percent=0.75,
    )
    res = _run(ulo_usage, ulo_rates, battery_20, 8000, ai_mode=True, policy=policy)
    assert res.solar_used_for_load == pytest.approx(2000)
    # 5,000 kWh discharged, 3,000 of it ULO-charged and booked before the constraints
    assert res.battery_charge_required == pytest.approx(3000)
    # cap: 1,000 kWh excess taken proportionally (20 %), then floor: 500 kWh off-peak clawback
    assert res.battery_offsets.on_peak == pytest.approx(1432)
    assert res.battery_offsets.mid_peak == pytest.approx(1048)
    assert res.battery_offsets.off_peak == pytest.approx(1020)
    assert res.battery_offsets.total == pytest.approx(3500)
    assert res.usage_after_battery.ultra_low == pytest.approx(5600)
    assert res.usage_after_battery.total == pytest.approx(7500)
    assert res.usage_after_battery.total - res.grid_charge_kwh == pytest.approx(4500)
    assert res.solar_used_for_load + res.battery_offsets.total <= 6000 + 1e-6


def test_ulo_charge_counts_toward_grid_floor(ulo_rates, battery_20):
    # annual usage above the period total makes the 10 % floor bind on raw grid usage
    usage = UsageBreakdown(off_peak=3000, mid_peak=2000, on_peak=1000, ultra_low=0)
    res = apply_ulo_formula(
        annual_usage_kwh=10_000,
        solar_production_kwh=8000,
        battery=battery_20,
        usage_original=usage,
        rates=ulo_rates,
        ai_mode=True,
    )
    assert res.solar_used_for_load == pytest.approx(5000)
    assert res.battery_offsets.off_peak == pytest.approx(1000)
    assert res.battery_charge_required == pytest.approx(1000)
    assert res.usage_after_battery.ultra_low == pytest.approx(1000)
    assert res.usage_after_battery.total >= 1000 - 1e-6
    assert res.post_solar_battery_annual_bill == pytest.approx(1000 * 0.039)


def test_ultra_low_usage_is_never_discharged(ulo_usage, ulo_rates, battery_20):
    res = _run(ulo_usage, ulo_rates, battery_20, 0, ai_mode=True)
    assert res.battery_offsets.ultra_low == 0


def test_targets_scale_with_usage(ulo_usage, ulo_rates, battery_20):
    half = ulo_usage.with_values({p: v / 2 for p, v in ulo_usage.as_mapping().items()})
    res = _run(half, ulo_rates, battery_20, 0, ai_mode=True)
    # 5,000 kWh * 30 % * 0.5 scale
    assert res.battery_offsets.total == pytest.approx(750)
