from . import combined as combined
from . import frd as frd
from . import projection as projection
from . import simple as simple

__all__ = ["combined", "frd", "projection", "simple"]
