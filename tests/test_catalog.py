from datetime import date

import pytest
from pydantic import ValidationError

from pse.catalog.batteries import (
    BATTERY_REBATE_MAX,
    battery_financials,
    batteries_by_brand,
    calculate_battery_rebate,
    calculate_net_price,
    find_battery,
    list_batteries,
)
from pse.catalog.distributions import (
    DEFAULT_TOU_DISTRIBUTION,
    DEFAULT_ULO_DISTRIBUTION,
    default_distribution,
    usage_from_distribution,
)
from pse.catalog.rate_plans import (
    TOU_RATE_PLAN,
    ULO_RATE_PLAN,
    cheapest_charging_hours,
    find_rate_plan,
    get_rate_for_datetime,
    is_weekend_or_holiday,
    most_expensive_discharge_hours,
    rates_from_plan,
)
from pse.models import BatterySpec, Period, UsageBreakdown

MONDAY = date(2025, 11, 3)
SATURDAY = date(2025, 11, 8)


# ==================== RATE PLANS ====================

def test_find_rate_plan_is_case_insensitive():
    assert find_rate_plan(" ULO ") is ULO_RATE_PLAN
    assert find_rate_plan("tou") is TOU_RATE_PLAN
    assert find_rate_plan("nope") is None


def test_rates_from_ulo_plan_uses_weekend_rate_for_off_peak():
    r = rates_from_plan(ULO_RATE_PLAN)
    assert r.ultra_low == pytest.approx(0.039)
    assert r.mid_peak == pytest.approx(0.157)
    assert r.on_peak == pytest.approx(0.391)
    assert r.off_peak == pytest.approx(0.098)


def test_rates_from_tou_plan_has_no_ultra_low():
    r = rates_from_plan(TOU_RATE_PLAN)
    assert r.ultra_low == 0
    assert r.on_peak == pytest.approx(0.203)
    assert r.cheapest_charge_rate() == pytest.approx(0.098)


@pytest.mark.parametrize("hour,rate,period", [
    (23, 3.9, "ultra-low"),
    (3, 3.9, "ultra-low"),
    (7, 15.7, "mid-peak"),
    (16, 39.1, "on-peak"),
    (22, 15.7, "mid-peak"),
])
def test_ulo_weekday_rates(hour, rate, period):
    assert get_rate_for_datetime(ULO_RATE_PLAN, MONDAY, hour) == (rate, period)


def test_weekend_and_holiday_override():
    assert get_rate_for_datetime(ULO_RATE_PLAN, SATURDAY, 18) == (9.8, "off-peak")
    assert is_weekend_or_holiday(date(2025, 12, 25))
    assert not is_weekend_or_holiday(MONDAY)


def test_charge_and_discharge_hours():
    cheap = cheapest_charging_hours(ULO_RATE_PLAN, 8)
    assert len(cheap) == 8
    assert all(period == "ultra-low" for _, _, period in cheap)

    dear = most_expensive_discharge_hours(ULO_RATE_PLAN)
    assert sorted(h for h, _, _ in dear) == [16, 17, 18, 19, 20]


# ==================== BATTERIES ====================

def test_battery_catalog_lookup():
    assert len(list_batteries()) == 6
    assert find_battery("tesla-powerwall").usable_kwh == pytest.approx(12.825)
    assert find_battery("missing") is None
    assert {b.id for b in batteries_by_brand("growatt")} == {"growatt-10", "growatt-15", "growatt-20"}


@pytest.mark.parametrize("nominal,rebate", [(10, 3000), (16, 4800), (32, BATTERY_REBATE_MAX), (-5, 0)])
def test_rebate(nominal, rebate):
    assert calculate_battery_rebate(nominal) == pytest.approx(rebate)


def test_net_price_and_financials():
    renon = find_battery("renon-16")
    assert calculate_net_price(renon.price, renon.nominal_kwh) == pytest.approx(3200)
    fin = battery_financials(renon)
    assert fin.net_price == pytest.approx(3200)
    assert fin.price_per_usable_kwh == pytest.approx(8000 / 14.4)


def test_battery_spec_rejects_bad_efficiency():
    with pytest.raises(ValidationError):
        BatterySpec(id="x", brand="X", model="X", nominal_kwh=1, usable_kwh=1, round_trip_efficiency=1.5)


# ==================== DISTRIBUTIONS ====================

def test_default_distribution_by_plan():
    assert default_distribution(ULO_RATE_PLAN) is DEFAULT_ULO_DISTRIBUTION
    assert default_distribution("tou") is DEFAULT_TOU_DISTRIBUTION
    assert DEFAULT_ULO_DISTRIBUTION.total_percent == pytest.approx(100)
    assert DEFAULT_TOU_DISTRIBUTION.total_percent == pytest.approx(100)


def test_usage_from_distribution():
    ulo = usage_from_distribution(10_000, DEFAULT_ULO_DISTRIBUTION)
    assert ulo.has_ultra_low
    assert ulo.ultra_low == pytest.approx(2600)
    assert ulo.total == pytest.approx(10_000)

    tou = usage_from_distribution(10_000, DEFAULT_TOU_DISTRIBUTION)
    assert not tou.has_ultra_low
    assert tou.on_peak == pytest.approx(1900)
    assert tou.get(Period.ULTRA_LOW) == 0


# ==================== USAGE MODEL ====================

def test_usage_from_mapping_accepts_any_key_style():
    u = UsageBreakdown.from_mapping({"offPeak": 10, "mid_peak": 20, "on-peak": -5, "ultraLow": 1})
    assert u.on_peak == 0
    assert u.ultra_low == 1
    assert u.to_dict() == {"ultraLow": 1, "offPeak": 10, "midPeak": 20, "onPeak": 0}


def test_period_parse_rejects_unknown():
    with pytest.raises(ValueError):
        Period.parse("shoulder")
