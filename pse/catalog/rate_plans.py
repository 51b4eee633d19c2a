"""
Ontario Energy Board (OEB) residential rate plans, effective 2025-11-01.

Rates are stored in cents/kWh as published; ``rates_from_plan`` converts to
the $/kWh ``RateStructure`` the engine consumes.
"""
from __future__ import annotations

from datetime import date, datetime
from enum import IntEnum
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from pse.models import Period, RateStructure


class DayOfWeek(IntEnum):
    # Matches datetime.date.weekday()
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


WEEKDAYS: list[DayOfWeek] = [
    DayOfWeek.MONDAY,
    DayOfWeek.TUESDAY,
    DayOfWeek.WEDNESDAY,
    DayOfWeek.THURSDAY,
    DayOfWeek.FRIDAY,
]

RatePeriodName = Literal["ultra-low", "off-peak", "mid-peak", "on-peak"]

# Statutory holidays billed at the weekend rate. Update annually.
ONTARIO_HOLIDAYS_2025: frozenset[str] = frozenset({
    "2025-01-01",  # New Year's Day
    "2025-02-17",  # Family Day
    "2025-04-18",  # Good Friday
    "2025-05-19",  # Victoria Day
    "2025-07-01",  # Canada Day
    "2025-08-04",  # Civic Holiday
    "2025-09-01",  # Labour Day
    "2025-10-13",  # Thanksgiving
    "2025-12-25",  # Christmas Day
    "2025-12-26",  # Boxing Day
})


class TimePeriod(BaseModel):
    start_hour: int = Field(ge=0, le=23)
    end_hour: int = Field(ge=0, le=24)
    days: list[DayOfWeek]
    rate: float = Field(ge=0)  # cents/kWh
    period: RatePeriodName

    def covers(self, hour: int) -> bool:
        if self.start_hour > self.end_hour:
            # wraps midnight, e.g. 23:00 -> 07:00
            return hour >= self.start_hour or hour < self.end_hour
        return self.start_hour <= hour < self.end_hour


class RatePlan(BaseModel):
    id: str
    name: str
    description: str
    effective_date: str
    periods: list[TimePeriod]
    weekend_rate: float | None = None  # cents/kWh, all weekend hours
    weekend_period: RatePeriodName | None = None

    @field_validator("id")
    @classmethod
    def _lower_id(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def has_ultra_low(self) -> bool:
        return any(p.period == "ultra-low" for p in self.periods)


ULO_RATE_PLAN = RatePlan(
    id="ulo",
    name="Ultra-Low Overnight (ULO)",
    description="Best for EV owners and those who can shift usage to overnight hours",
    effective_date="2025-11-01",
    weekend_rate=9.8,
    weekend_period="off-peak",
    periods=[
        TimePeriod(start_hour=23, end_hour=7, days=WEEKDAYS, rate=3.9, period="ultra-low"),
        TimePeriod(start_hour=7, end_hour=16, days=WEEKDAYS, rate=15.7, period="mid-peak"),
        TimePeriod(start_hour=16, end_hour=21, days=WEEKDAYS, rate=39.1, period="on-peak"),
        TimePeriod(start_hour=21, end_hour=23, days=WEEKDAYS, rate=15.7, period="mid-peak"),
    ],
)

TOU_RATE_PLAN = RatePlan(
    id="tou",
    name="Time-of-Use (TOU)",
    description="Standard time-based pricing for most households",
    effective_date="2025-11-01",
    weekend_rate=9.8,
    weekend_period="off-peak",
    periods=[
        TimePeriod(start_hour=0, end_hour=7, days=WEEKDAYS, rate=9.8, period="off-peak"),
        TimePeriod(start_hour=7, end_hour=11, days=WEEKDAYS, rate=20.3, period="on-peak"),
        TimePeriod(start_hour=11, end_hour=17, days=WEEKDAYS, rate=15.7, period="mid-peak"),
        TimePeriod(start_hour=17, end_hour=19, days=WEEKDAYS, rate=20.3, period="on-peak"),
        TimePeriod(start_hour=19, end_hour=24, days=WEEKDAYS, rate=9.8, period="off-peak"),
    ],
)

RATE_PLANS: list[RatePlan] = [ULO_RATE_PLAN, TOU_RATE_PLAN]


def list_rate_plans() -> list[RatePlan]:
    return RATE_PLANS.copy()


def find_rate_plan(plan_id: str) -> RatePlan | None:
    key = (plan_id or "").strip().lower()
    for p in RATE_PLANS:
        if p.id == key:
            return p
    return None


def rates_from_plan(plan: RatePlan) -> RateStructure:
    """
    $/kWh per billing period.

    Periods a plan does not define stay at 0; when the weekday schedule has no
    off-peak window the weekend rate stands in for it.
    """
    vals: dict[Period, float] = {}
    for tp in plan.periods:
        vals[Period.parse(tp.period)] = tp.rate / 100.0
    if not vals.get(Period.OFF_PEAK) and plan.weekend_rate:
        vals[Period.OFF_PEAK] = plan.weekend_rate / 100.0
    return RateStructure(**{p.value: v for p, v in vals.items()})


def is_weekend_or_holiday(d: date | datetime, holidays: frozenset[str] = ONTARIO_HOLIDAYS_2025) -> bool:
    return d.weekday() >= DayOfWeek.SATURDAY or f"{d:%Y-%m-%d}" in holidays


def get_rate_for_datetime(plan: RatePlan, when: date | datetime, hour: int) -> tuple[float, RatePeriodName]:
    """Return (cents/kWh, period name) in effect at ``hour`` on ``when``."""
    if plan.weekend_rate is not None and is_weekend_or_holiday(when):
        return plan.weekend_rate, plan.weekend_period or "off-peak"

    dow = DayOfWeek(when.weekday())
    for tp in plan.periods:
        if dow in tp.days and tp.covers(hour):
            return tp.rate, tp.period

    return plan.weekend_rate or 9.8, "off-peak"


def _weekday_hours(plan: RatePlan) -> list[tuple[int, float, RatePeriodName]]:
    weekday = date(2025, 11, 3)  # a Monday
    return [(h, *get_rate_for_datetime(plan, weekday, h)) for h in range(24)]


def cheapest_charging_hours(plan: RatePlan, hours_needed: int = 8) -> list[tuple[int, float, RatePeriodName]]:
    return sorted(_weekday_hours(plan), key=lambda r: r[1])[:hours_needed]


def most_expensive_discharge_hours(plan: RatePlan, hours_needed: int = 5) -> list[tuple[int, float, RatePeriodName]]:
    return sorted(_weekday_hours(plan), key=lambda r: r[1], reverse=True)[:hours_needed]
