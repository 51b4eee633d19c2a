from __future__ import annotations

from dataclasses import dataclass

from pse.catalog.rate_plans import RatePlan
from pse.models import UsageBreakdown, non_negative


@dataclass(frozen=True)
class UsageDistribution:
    """Share of annual usage (percent) falling in each billing period."""
    off_peak_percent: float
    mid_peak_percent: float
    on_peak_percent: float
    ultra_low_percent: float | None = None

    @property
    def total_percent(self) -> float:
        return self.off_peak_percent + self.mid_peak_percent + self.on_peak_percent + (self.ultra_low_percent or 0.0)


@dataclass(frozen=True)
class DayNightSplit:
    p_day: float = 0.5
    p_night: float = 0.5


# Weekday on/mid-peak shares for the TOU solar + battery scenario; remainder off-peak.
DEFAULT_TOU_DISTRIBUTION = UsageDistribution(off_peak_percent=63, mid_peak_percent=18, on_peak_percent=19)

# Shares used in the ULO email baseline.
DEFAULT_ULO_DISTRIBUTION = UsageDistribution(
    off_peak_percent=23, mid_peak_percent=33.1, on_peak_percent=17.9, ultra_low_percent=26,
)

DEFAULT_DAY_NIGHT_SPLIT = DayNightSplit()


def default_distribution(plan: RatePlan | str) -> UsageDistribution:
    plan_id = plan if isinstance(plan, str) else plan.id
    return DEFAULT_ULO_DISTRIBUTION if plan_id.strip().lower().startswith("ulo") else DEFAULT_TOU_DISTRIBUTION


def usage_from_distribution(annual_usage_kwh: float, dist: UsageDistribution) -> UsageBreakdown:
    """Split annual kWh into period buckets; the ultra-low bucket exists only if the distribution has one."""
    u = non_negative(annual_usage_kwh)
    return UsageBreakdown(
        off_peak=u * dist.off_peak_percent / 100,
        mid_peak=u * dist.mid_peak_percent / 100,
        on_peak=u * dist.on_peak_percent / 100,
        ultra_low=u * dist.ultra_low_percent / 100 if dist.ultra_low_percent else None,
    )
