from . import batteries as batteries
from . import distributions as distributions
from . import rate_plans as rate_plans

__all__ = ["batteries", "distributions", "rate_plans"]
