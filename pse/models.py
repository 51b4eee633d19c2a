from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


def non_negative(value: Any) -> float:
    """Coerce a caller-supplied quantity to a float >= 0 (None/NaN/negatives -> 0)."""
    try:
        v = float(value or 0.0)
    except (TypeError, ValueError):
        return 0.0
    if v != v or v < 0:
        return 0.0
    return v


# --------------------------------------------------------------------------------------
# Billing periods
# --------------------------------------------------------------------------------------
class Period(str, Enum):
    ULTRA_LOW = "ultra_low"
    OFF_PEAK = "off_peak"
    MID_PEAK = "mid_peak"
    ON_PEAK = "on_peak"

    @property
    def key(self) -> str:
        """camelCase key used in dict/JSON views."""
        return _CAMEL[self]

    @classmethod
    def parse(cls, name: str) -> Period:
        """Accept ``ultra_low``, ``ultraLow`` or ``ultra-low`` spellings."""
        norm = str(name).strip().replace("-", "_")
        for p in cls:
            if norm == p.value or norm == p.key:
                return p
        raise ValueError(f"unknown billing period: {name!r}")


_CAMEL: dict[Period, str] = {
    Period.ULTRA_LOW: "ultraLow",
    Period.OFF_PEAK: "offPeak",
    Period.MID_PEAK: "midPeak",
    Period.ON_PEAK: "onPeak",
}

# Periods a battery may discharge into; ultra-low is the cheapest and never shaved.
DISCHARGEABLE: frozenset[Period] = frozenset({Period.ON_PEAK, Period.MID_PEAK, Period.OFF_PEAK})


@dataclass(frozen=True)
class UsageBreakdown:
    """
    Annual kWh per billing period.

    ``ultra_low is None`` is the three-period variant (plans without an
    ultra-low overnight window); a float makes it the four-period variant.
    Read values through ``get`` so the missing period reads as 0.
    """
    off_peak: float = 0.0
    mid_peak: float = 0.0
    on_peak: float = 0.0
    ultra_low: float | None = None

    @property
    def has_ultra_low(self) -> bool:
        return self.ultra_low is not None

    def get(self, period: Period) -> float:
        if period is Period.ULTRA_LOW:
            return self.ultra_low or 0.0
        return float(getattr(self, period.value))

    def periods(self) -> tuple[Period, ...]:
        base = (Period.OFF_PEAK, Period.MID_PEAK, Period.ON_PEAK)
        return (Period.ULTRA_LOW, *base) if self.has_ultra_low else base

    def as_mapping(self) -> dict[Period, float]:
        return {p: self.get(p) for p in self.periods()}

    @property
    def total(self) -> float:
        return sum(self.get(p) for p in self.periods())

    def with_values(self, values: Mapping[Period, float]) -> UsageBreakdown:
        """Return a copy with the given periods replaced (setting ULTRA_LOW adds the period)."""
        return replace(self, **{p.value: float(v) for p, v in values.items()})

    @classmethod
    def zeros(cls, *, ultra_low: bool = False) -> UsageBreakdown:
        return cls(ultra_low=0.0 if ultra_low else None)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> UsageBreakdown:
        """Build from camelCase, snake_case or kebab-case keys; values are clamped to >= 0."""
        vals: dict[Period, float] = {}
        for k, v in data.items():
            if v is None:
                continue
            vals[Period.parse(k)] = non_negative(v)
        return cls(
            off_peak=vals.get(Period.OFF_PEAK, 0.0),
            mid_peak=vals.get(Period.MID_PEAK, 0.0),
            on_peak=vals.get(Period.ON_PEAK, 0.0),
            ultra_low=vals.get(Period.ULTRA_LOW),
        )

    def sanitized(self) -> UsageBreakdown:
        return replace(
            self,
            off_peak=non_negative(self.off_peak),
            mid_peak=non_negative(self.mid_peak),
            on_peak=non_negative(self.on_peak),
            ultra_low=None if self.ultra_low is None else non_negative(self.ultra_low),
        )

    def to_dict(self) -> dict[str, float]:
        return {p.key: self.get(p) for p in self.periods()}


@dataclass(frozen=True)
class RateStructure:
    """$/kWh per billing period. Zero is a legitimate rate for an unused period."""
    off_peak: float = 0.0
    mid_peak: float = 0.0
    on_peak: float = 0.0
    ultra_low: float = 0.0

    def get(self, period: Period) -> float:
        return float(getattr(self, period.value))

    def cheapest_charge_rate(self) -> float:
        return self.ultra_low if self.ultra_low > 0 else self.off_peak

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RateStructure:
        vals = {Period.parse(k): non_negative(v) for k, v in data.items()}
        return cls(**{p.value: v for p, v in vals.items()})

    def to_dict(self) -> dict[str, float]:
        return {p.key: self.get(p) for p in Period}


# --------------------------------------------------------------------------------------
# Battery catalog record
# --------------------------------------------------------------------------------------
class Warranty(BaseModel):
    years: int = 10
    cycles: int = 6000


class BatterySpec(BaseModel):
    id: str
    brand: str
    model: str
    nominal_kwh: float = Field(ge=0)
    usable_kwh: float = Field(ge=0)
    usable_percent: float = 90.0
    round_trip_efficiency: float = 0.90
    inverter_kw: float = 5.0
    price: float = 0.0
    warranty: Warranty = Field(default_factory=Warranty)
    description: str | None = None

    @field_validator("round_trip_efficiency")
    @classmethod
    def _valid_efficiency(cls, v: float) -> float:
        if not 0 < v <= 1:
            raise ValueError("round_trip_efficiency must be in (0, 1]")
        return v

    @property
    def label(self) -> str:
        return f"{self.brand} {self.model}"


# --------------------------------------------------------------------------------------
# Formula inputs / outputs
# --------------------------------------------------------------------------------------
@dataclass(frozen=True)
class GenericFormulaInput:
    solar_production_kwh: float
    battery: BatterySpec
    usage_original: UsageBreakdown
    rates: RateStructure


@dataclass(frozen=True)
class TouFormulaInput:
    annual_usage_kwh: float
    solar_production_kwh: float
    battery: BatterySpec
    usage_original: UsageBreakdown
    rates: RateStructure
    ai_mode: bool = False


# Same shape; kept as a distinct name so call sites read as the plan they model.
UloFormulaInput = TouFormulaInput


@dataclass(frozen=True)
class FormulaResult:
    post_solar_annual_bill: float
    post_solar_battery_annual_bill: float
    battery_offsets: UsageBreakdown
    usage_after_solar: UsageBreakdown
    usage_after_battery: UsageBreakdown
    solar_used_for_load: float = 0.0
    solar_allocation: UsageBreakdown | None = None
    battery_charge_required: float | None = None
    battery_charge_from_off_peak: float | None = None
    solar_cap: float | None = None

    @property
    def total_battery_offset(self) -> float:
        return self.battery_offsets.total

    @property
    def grid_charge_kwh(self) -> float:
        """Grid energy bought to recharge the battery and booked into usage_after_battery."""
        return (self.battery_charge_required or 0.0) + (self.battery_charge_from_off_peak or 0.0)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "postSolarAnnualBill": self.post_solar_annual_bill,
            "postSolarBatteryAnnualBill": self.post_solar_battery_annual_bill,
            "batteryOffsets": self.battery_offsets.to_dict(),
            "usageAfterSolar": self.usage_after_solar.to_dict(),
            "usageAfterBattery": self.usage_after_battery.to_dict(),
        }
        if self.solar_allocation is not None:
            out["solarAllocation"] = self.solar_allocation.to_dict()
        if self.battery_charge_required is not None:
            out["batteryChargeRequired"] = self.battery_charge_required
        if self.battery_charge_from_off_peak is not None:
            out["batteryChargeFromOffPeak"] = self.battery_charge_from_off_peak
        if self.solar_cap is not None:
            out["solarCap"] = self.solar_cap
        return out


# --------------------------------------------------------------------------------------
# Offset-cap estimator
# --------------------------------------------------------------------------------------
@dataclass(frozen=True)
class RoofSection:
    azimuth: float | None = None
    orientation_azimuth: float | None = None
    direction: str | None = None


@dataclass(frozen=True)
class OffsetCapInput:
    usage_kwh: float
    production_kwh: float
    roof_pitch: str | float | None = None
    roof_azimuth: float | None = None
    roof_sections: tuple[RoofSection | Mapping[str, Any], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class OffsetCapResult:
    cap_fraction: float
    base_fraction: float
    matches_usage: bool
    orientation_bonus: bool
    production_bonus: bool
    production_to_load_ratio: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "capFraction": self.cap_fraction,
            "baseFraction": self.base_fraction,
            "matchesUsage": self.matches_usage,
            "orientationBonus": self.orientation_bonus,
            "productionBonus": self.production_bonus,
            "productionToLoadRatio": self.production_to_load_ratio,
        }
