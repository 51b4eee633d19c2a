# Expose submodules at the package level so `from pse import config` works
from . import catalog as catalog
from . import config as config
from . import engine as engine
from . import estimators as estimators
from . import models as models

__all__ = ["config", "models", "engine", "catalog", "estimators"]
