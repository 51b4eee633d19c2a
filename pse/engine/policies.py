"""
Immutable policy records for the rate-plan formulas.

Every formula takes one of these as ``policy=``; the module-level defaults are
the values used by the Ontario OEB TOU / ULO estimator. Alternate policy sets
are built with ``dataclasses.replace``.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from pse.models import Period

DAYS_PER_YEAR = 365  # one full battery cycle per day


@dataclass(frozen=True)
class SolarAllocationWeights:
    """Target share of capped solar aimed at each period (shares sum to 1)."""
    mid_peak: float = 0.50
    on_peak: float = 0.22
    off_peak: float = 0.28
    ultra_low: float = 0.0

    def share(self, period: Period) -> float:
        return float(getattr(self, period.value))


@dataclass(frozen=True)
class GenericPolicy:
    solar_order: tuple[Period, ...] = (Period.ON_PEAK, Period.MID_PEAK, Period.OFF_PEAK, Period.ULTRA_LOW)
    discharge_order: tuple[Period, ...] = (Period.ON_PEAK, Period.MID_PEAK, Period.OFF_PEAK)
    cycles_per_year: int = DAYS_PER_YEAR


@dataclass(frozen=True)
class TouPolicy:
    solar_cap_percent: float = 0.5
    weights: SolarAllocationWeights = field(default_factory=SolarAllocationWeights)
    weighted_order: tuple[Period, ...] = (Period.MID_PEAK, Period.ON_PEAK, Period.OFF_PEAK)
    sweep_order: tuple[Period, ...] = (Period.ON_PEAK, Period.MID_PEAK, Period.OFF_PEAK)
    discharge_order: tuple[Period, ...] = (Period.ON_PEAK, Period.MID_PEAK, Period.OFF_PEAK)
    cycles_per_year: int = DAYS_PER_YEAR


@dataclass(frozen=True)
class UloPolicy:
    """FRD (Full Requirements Document) constants for the ultra-low overnight plan."""
    solar_cap_percent: float = 0.5
    max_solar_to_battery_kwh: float = 2000.0
    max_ulo_to_battery_kwh: float = 3000.0
    min_grid_purchases_percent: float = 0.10
    max_offset_percent: float = 0.85
    max_solar_to_battery_winter: float = 200.0
    max_solar_to_battery_summer: float = 1800.0
    winter_solar_percent: float = 0.35  # Oct-Mar
    summer_solar_percent: float = 0.65  # Apr-Sep
    target_solar_direct_percent: float = 0.5
    target_solar_to_battery_percent: float = 0.2
    target_ulo_to_battery_percent: float = 0.3
    baseline_usage_kwh: float = 10_000.0
    solar_order: tuple[Period, ...] = (Period.MID_PEAK, Period.ON_PEAK, Period.OFF_PEAK, Period.ULTRA_LOW)
    discharge_order: tuple[Period, ...] = (Period.ON_PEAK, Period.MID_PEAK, Period.OFF_PEAK)
    cycles_per_year: int = DAYS_PER_YEAR

    @property
    def seasonal_solar_to_battery_kwh(self) -> float:
        return self.max_solar_to_battery_summer + self.max_solar_to_battery_winter


TOU_SOLAR_ALLOCATION = SolarAllocationWeights()
ULO_SOLAR_ALLOCATION = SolarAllocationWeights()

DEFAULT_GENERIC_POLICY = GenericPolicy()
DEFAULT_TOU_POLICY = TouPolicy(weights=TOU_SOLAR_ALLOCATION)
ULO_FRD_CONSTANTS = UloPolicy()
