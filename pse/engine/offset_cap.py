from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pse.models import OffsetCapInput, OffsetCapResult, RoofSection, non_negative

SOUTH = 180.0
STEEP_PITCH_DEG = 35.0
SOUTH_TOLERANCE_DEG = 25.0
MATCHED_BASE = 0.90
UNMATCHED_BASE = 0.92
BONUS = 0.01
MAX_CAP = 0.93


def _normalize_azimuth(value: float) -> float:
    return value % 360.0


def _angular_difference(a: float, b: float) -> float:
    diff = abs(_normalize_azimuth(a) - _normalize_azimuth(b))
    return 360.0 - diff if diff > 180.0 else diff


def _is_steep(pitch: str | float | None) -> bool:
    if isinstance(pitch, bool):
        return False
    if isinstance(pitch, (int, float)):
        return pitch >= STEEP_PITCH_DEG
    if isinstance(pitch, str):
        s = pitch.lower()
        return "steep" in s or "40" in s or "45" in s
    return False


def _section_value(section: RoofSection | Mapping[str, Any], *names: str) -> Any:
    for name in names:
        val = section.get(name) if isinstance(section, Mapping) else getattr(section, name, None)
        if val is not None:
            return val
    return None


def _resolve_azimuth(inp: OffsetCapInput) -> float | None:
    """Explicit roof azimuth wins; otherwise the first roof section that says anything."""
    az = inp.roof_azimuth
    if isinstance(az, (int, float)) and not isinstance(az, bool) and az == az and abs(az) != float("inf"):
        return float(az)

    for section in inp.roof_sections or ():
        val = _section_value(section, "azimuth")
        if isinstance(val, (int, float)):
            return float(val)
        val = _section_value(section, "orientation_azimuth", "orientationAzimuth")
        if isinstance(val, (int, float)):
            return float(val)
        direction = _section_value(section, "direction")
        if isinstance(direction, str) and "south" in direction.lower():
            return SOUTH
    return None


def compute_solar_battery_offset_cap(inp: OffsetCapInput | None = None, **kwargs: Any) -> OffsetCapResult:
    """
    Most plausible maximum total-offset fraction (0.90-0.93) for a roof.

    Base 0.90 when production closely matches usage (ratio within 0.95-1.05),
    else 0.92; +0.01 for a steep roof facing within 25 deg of south; +0.01
    when production exceeds usage by 10 % or more; capped at 0.93.
    """
    if inp is None:
        inp = OffsetCapInput(**kwargs)

    usage = non_negative(inp.usage_kwh)
    production = non_negative(inp.production_kwh)
    if usage == 0:
        return OffsetCapResult(
            cap_fraction=0.0,
            base_fraction=UNMATCHED_BASE,
            matches_usage=False,
            orientation_bonus=False,
            production_bonus=False,
            production_to_load_ratio=0.0,
        )

    ratio = production / usage
    matches_usage = 0.95 < ratio < 1.05
    azimuth = _resolve_azimuth(inp)
    orientation_bonus = _is_steep(inp.roof_pitch) and (
        azimuth is not None and _angular_difference(azimuth, SOUTH) <= SOUTH_TOLERANCE_DEG
    )
    production_bonus = ratio >= 1.1

    base = MATCHED_BASE if matches_usage else UNMATCHED_BASE
    fraction = base + (BONUS if orientation_bonus else 0.0) + (BONUS if production_bonus else 0.0)

    return OffsetCapResult(
        cap_fraction=min(fraction, MAX_CAP),
        base_fraction=base,
        matches_usage=matches_usage,
        orientation_bonus=orientation_bonus,
        production_bonus=production_bonus,
        production_to_load_ratio=ratio,
    )
