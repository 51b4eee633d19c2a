from __future__ import annotations

from dataclasses import dataclass

from pse.models import BatterySpec, Warranty

# Rebate: $300 per nominal kWh, capped at $5,000 (CAD)
BATTERY_REBATE_PER_KWH = 300.0
BATTERY_REBATE_MAX = 5000.0

_STATIC_SPECS: list[BatterySpec] = [
    BatterySpec(
        id="renon-16", brand="Renon", model="16 kWh",
        nominal_kwh=16, usable_kwh=14.4, usable_percent=90, round_trip_efficiency=0.90,
        inverter_kw=5.0, price=8000, warranty=Warranty(years=10, cycles=6000),
        description="Compact and affordable solution for basic peak shaving",
    ),
    BatterySpec(
        id="renon-32", brand="Renon", model="32 kWh",
        nominal_kwh=32, usable_kwh=28.8, usable_percent=90, round_trip_efficiency=0.90,
        inverter_kw=10.0, price=11000, warranty=Warranty(years=10, cycles=6000),
        description="High capacity for maximum peak shaving potential",
    ),
    BatterySpec(
        id="tesla-powerwall", brand="Tesla", model="Powerwall 13.5",
        nominal_kwh=13.5, usable_kwh=12.825, usable_percent=95, round_trip_efficiency=0.92,
        inverter_kw=5.0, price=17000, warranty=Warranty(years=10, cycles=3650),
        description="Premium battery with industry-leading efficiency",
    ),
    BatterySpec(
        id="growatt-10", brand="Growatt", model="10 kWh",
        nominal_kwh=10, usable_kwh=9.0, usable_percent=90, round_trip_efficiency=0.90,
        inverter_kw=5.0, price=10000, warranty=Warranty(years=10, cycles=6000),
        description="Entry-level battery for small homes",
    ),
    BatterySpec(
        id="growatt-15", brand="Growatt", model="15 kWh",
        nominal_kwh=15, usable_kwh=13.5, usable_percent=90, round_trip_efficiency=0.90,
        inverter_kw=5.0, price=13000, warranty=Warranty(years=10, cycles=6000),
        description="Mid-sized battery for average households",
    ),
    BatterySpec(
        id="growatt-20", brand="Growatt", model="20 kWh",
        nominal_kwh=20, usable_kwh=18.0, usable_percent=90, round_trip_efficiency=0.90,
        inverter_kw=5.0, price=16000, warranty=Warranty(years=10, cycles=6000),
        description="Large capacity for high-usage homes",
    ),
]


def list_batteries() -> list[BatterySpec]:
    return _STATIC_SPECS.copy()


def find_battery(battery_id: str) -> BatterySpec | None:
    for b in _STATIC_SPECS:
        if b.id == battery_id:
            return b
    return None


def batteries_by_brand(brand: str) -> list[BatterySpec]:
    return [b for b in _STATIC_SPECS if b.brand.lower() == brand.strip().lower()]


def calculate_battery_rebate(nominal_kwh: float) -> float:
    return min(max(nominal_kwh, 0.0) * BATTERY_REBATE_PER_KWH, BATTERY_REBATE_MAX)


def calculate_net_price(price: float, nominal_kwh: float) -> float:
    return price - calculate_battery_rebate(nominal_kwh)


@dataclass(frozen=True)
class BatteryFinancials:
    battery: BatterySpec
    rebate: float
    net_price: float
    price_per_usable_kwh: float
    net_price_per_usable_kwh: float


def battery_financials(battery: BatterySpec) -> BatteryFinancials:
    rebate = calculate_battery_rebate(battery.nominal_kwh)
    net = battery.price - rebate
    usable = battery.usable_kwh
    return BatteryFinancials(
        battery=battery,
        rebate=rebate,
        net_price=net,
        price_per_usable_kwh=battery.price / usable if usable > 0 else 0.0,
        net_price_per_usable_kwh=net / usable if usable > 0 else 0.0,
    )
