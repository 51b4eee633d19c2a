from pse.engine.generic import apply_generic_formula
from pse.engine.offset_cap import compute_solar_battery_offset_cap
from pse.engine.policies import (
    DEFAULT_GENERIC_POLICY,
    DEFAULT_TOU_POLICY,
    TOU_SOLAR_ALLOCATION,
    ULO_FRD_CONSTANTS,
    ULO_SOLAR_ALLOCATION,
    GenericPolicy,
    SolarAllocationWeights,
    TouPolicy,
    UloPolicy,
)
from pse.engine.primitives import (
    allocate_solar_to_periods,
    cap_total_offset,
    cost_from_usage,
    discharge_battery_to_periods,
    enforce_minimum_grid_purchases,
)
from pse.engine.registry import FormulaKind, formula_for_plan, run_formula
from pse.engine.tou import apply_tou_formula
from pse.engine.ulo import apply_ulo_formula

__all__ = [
    "DEFAULT_GENERIC_POLICY",
    "DEFAULT_TOU_POLICY",
    "TOU_SOLAR_ALLOCATION",
    "ULO_FRD_CONSTANTS",
    "ULO_SOLAR_ALLOCATION",
    "FormulaKind",
    "GenericPolicy",
    "SolarAllocationWeights",
    "TouPolicy",
    "UloPolicy",
    "allocate_solar_to_periods",
    "apply_generic_formula",
    "apply_tou_formula",
    "apply_ulo_formula",
    "cap_total_offset",
    "compute_solar_battery_offset_cap",
    "cost_from_usage",
    "discharge_battery_to_periods",
    "enforce_minimum_grid_purchases",
    "formula_for_plan",
    "run_formula",
]
