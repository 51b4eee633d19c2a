from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from pse.catalog.batteries import find_battery
from pse.catalog.distributions import UsageDistribution
from pse.catalog.rate_plans import find_rate_plan
from pse.config import settings
from pse.engine.offset_cap import compute_solar_battery_offset_cap
from pse.estimators.combined import calculate_solar_battery_combined
from pse.models import BatterySpec, OffsetCapInput


class DistributionIn(BaseModel):
    off_peak_percent: float = Field(ge=0)
    mid_peak_percent: float = Field(ge=0)
    on_peak_percent: float = Field(ge=0)
    ultra_low_percent: float | None = Field(default=None, ge=0)

    def to_distribution(self) -> UsageDistribution:
        return UsageDistribution(
            off_peak_percent=self.off_peak_percent,
            mid_peak_percent=self.mid_peak_percent,
            on_peak_percent=self.on_peak_percent,
            ultra_low_percent=self.ultra_low_percent,
        )


class RoofIn(BaseModel):
    pitch: str | float | None = None
    azimuth: float | None = None
    sections: list[dict[str, Any]] = Field(default_factory=list)


class Scenario(BaseModel):
    """One savings question: a household, a plan and a battery."""
    name: str | None = None
    rate_plan: str = Field(default_factory=lambda: settings.default_rate_plan)
    annual_usage_kwh: float = Field(ge=0)
    solar_production_kwh: float = Field(default=0.0, ge=0)
    battery_id: str | None = None
    battery: BatterySpec | None = None
    ai_mode: bool = Field(default_factory=lambda: settings.ai_mode)
    distribution: DistributionIn | None = None
    offset_cap_fraction: float | None = Field(default=None, ge=0, le=1)
    roof: RoofIn | None = None

    @field_validator("rate_plan")
    @classmethod
    def _known_plan(cls, v: str) -> str:
        if find_rate_plan(v) is None:
            raise ValueError(f"unknown rate plan: {v!r}")
        return v.strip().lower()

    @model_validator(mode="after")
    def _one_battery(self) -> Scenario:
        if self.battery is None and self.battery_id is None:
            raise ValueError("scenario needs either battery_id or an inline battery")
        if self.battery is None and find_battery(self.battery_id or "") is None:
            raise ValueError(f"unknown battery id: {self.battery_id!r}")
        return self

    def resolved_battery(self) -> BatterySpec:
        if self.battery is not None:
            return self.battery
        b = find_battery(self.battery_id or "")
        if b is None:
            raise ValueError(f"unknown battery id: {self.battery_id!r}")
        return b


def load_scenario(json_path: Path) -> Scenario:
    """Load a Scenario from a JSON file path."""
    with open(json_path, encoding="utf-8") as f:
        data = json.load(f)
    return Scenario.model_validate(data)


def run_scenario(scenario: Scenario) -> dict[str, Any]:
    """Combined estimate plus, when roof data is given, the roof-geometry offset cap."""
    plan = find_rate_plan(scenario.rate_plan)
    if plan is None:
        raise ValueError(f"unknown rate plan: {scenario.rate_plan!r}")
    battery = scenario.resolved_battery()

    offset_cap = None
    if scenario.roof is not None:
        offset_cap = compute_solar_battery_offset_cap(OffsetCapInput(
            usage_kwh=scenario.annual_usage_kwh,
            production_kwh=scenario.solar_production_kwh,
            roof_pitch=scenario.roof.pitch,
            roof_azimuth=scenario.roof.azimuth,
            roof_sections=tuple(scenario.roof.sections),
        ))

    est = calculate_solar_battery_combined(
        scenario.annual_usage_kwh,
        scenario.solar_production_kwh,
        battery,
        plan,
        distribution=scenario.distribution.to_distribution() if scenario.distribution else None,
        offset_cap_fraction=scenario.offset_cap_fraction,
        ai_mode=scenario.ai_mode,
    )
    return {
        "name": scenario.name,
        "ratePlan": plan.id,
        "battery": battery.label,
        "estimate": est.to_dict(),
        "offsetCap": offset_cap.to_dict() if offset_cap else None,
    }
