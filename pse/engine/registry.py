from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pse.engine.generic import apply_generic_formula
from pse.engine.policies import (
    DEFAULT_GENERIC_POLICY,
    DEFAULT_TOU_POLICY,
    ULO_FRD_CONSTANTS,
)
from pse.engine.tou import apply_tou_formula
from pse.engine.ulo import apply_ulo_formula
from pse.models import (
    BatterySpec,
    FormulaResult,
    GenericFormulaInput,
    RateStructure,
    TouFormulaInput,
    UsageBreakdown,
)


# --------------------------------------------------------------------------------------
# Formula kinds
# --------------------------------------------------------------------------------------
class FormulaKind(str, Enum):
    GENERIC = "generic"
    TOU = "tou"
    ULO = "ulo"


@dataclass(frozen=True)
class FormulaDescriptor:
    """One rate-plan strategy: the formula, its default policy and the plan ids it serves."""
    kind: FormulaKind
    name: str
    apply: Callable[..., FormulaResult]
    default_policy: Any
    plan_ids: tuple[str, ...] = field(default_factory=tuple)
    notes: str | None = None


_REGISTRY: dict[FormulaKind, FormulaDescriptor] = {
    FormulaKind.TOU: FormulaDescriptor(
        kind=FormulaKind.TOU,
        name="Time-of-Use",
        apply=apply_tou_formula,
        default_policy=DEFAULT_TOU_POLICY,
        plan_ids=("tou", "tou-solar-battery"),
        notes="Weighted solar shares, 50% self-consumption cap, optional grid charging at off-peak.",
    ),
    FormulaKind.ULO: FormulaDescriptor(
        kind=FormulaKind.ULO,
        name="Ultra-Low Overnight (FRD)",
        apply=apply_ulo_formula,
        default_policy=ULO_FRD_CONSTANTS,
        plan_ids=("ulo", "ulo-solar-battery"),
        notes="Solar/ULO virtual batteries, 85% offset cap then 10% grid floor.",
    ),
    FormulaKind.GENERIC: FormulaDescriptor(
        kind=FormulaKind.GENERIC,
        name="Generic",
        apply=apply_generic_formula,
        default_policy=DEFAULT_GENERIC_POLICY,
        notes="Most-expensive-first solar and battery, recharge at the cheapest rate.",
    ),
}


# --------------------------------------------------------------------------------------
# Public API
# --------------------------------------------------------------------------------------
def list_formulas() -> list[FormulaDescriptor]:
    return list(_REGISTRY.values())


def get_formula(kind: FormulaKind) -> FormulaDescriptor:
    return _REGISTRY[kind]


def formula_for_plan(plan_id: str | None) -> FormulaDescriptor:
    """Unknown or missing plan ids fall back to the generic formula."""
    key = (plan_id or "").strip().lower()
    for d in _REGISTRY.values():
        if key in d.plan_ids:
            return d
    return _REGISTRY[FormulaKind.GENERIC]


def run_formula(
    plan_id: str | None,
    *,
    annual_usage_kwh: float,
    solar_production_kwh: float,
    battery: BatterySpec,
    usage_original: UsageBreakdown,
    rates: RateStructure,
    ai_mode: bool = False,
    policy: Any = None,
) -> FormulaResult:
    """Dispatch to the formula registered for ``plan_id``."""
    d = formula_for_plan(plan_id)
    pol = policy if policy is not None else d.default_policy
    if d.kind is FormulaKind.GENERIC:
        return d.apply(
            GenericFormulaInput(
                solar_production_kwh=solar_production_kwh,
                battery=battery,
                usage_original=usage_original,
                rates=rates,
            ),
            policy=pol,
        )
    return d.apply(
        TouFormulaInput(
            annual_usage_kwh=annual_usage_kwh,
            solar_production_kwh=solar_production_kwh,
            battery=battery,
            usage_original=usage_original,
            rates=rates,
            ai_mode=ai_mode,
        ),
        policy=pol,
    )
