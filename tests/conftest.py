import pytest

from pse.catalog.rate_plans import TOU_RATE_PLAN, ULO_RATE_PLAN, rates_from_plan
from pse.models import BatterySpec, RateStructure, UsageBreakdown


def make_battery(usable_kwh: float, **overrides) -> BatterySpec:
    data = {
        "id": "test-battery",
        "brand": "Test",
        "model": f"{usable_kwh} kWh",
        "nominal_kwh": usable_kwh / 0.9,
        "usable_kwh": usable_kwh,
        "price": usable_kwh * 500,
    }
    data.update(overrides)
    return BatterySpec(**data)


# ==================== FIXTURES ====================

@pytest.fixture
def battery_10():
    return make_battery(10)


@pytest.fixture
def battery_20():
    return make_battery(20)


@pytest.fixture
def tou_usage():
    return UsageBreakdown(off_peak=4000, mid_peak=2000, on_peak=1000, ultra_low=0)


@pytest.fixture
def tou_rates():
    return RateStructure(off_peak=0.10, mid_peak=0.15, on_peak=0.20, ultra_low=0.03)


@pytest.fixture
def ulo_usage():
    # 10,000 kWh on the default ULO shares
    return UsageBreakdown(off_peak=2300, mid_peak=3310, on_peak=1790, ultra_low=2600)


@pytest.fixture
def ulo_rates():
    return rates_from_plan(ULO_RATE_PLAN)


@pytest.fixture
def oeb_tou_rates():
    return rates_from_plan(TOU_RATE_PLAN)


@pytest.fixture
def battery_factory():
    return make_battery
