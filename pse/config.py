import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    log_level: str = os.getenv("PSE_LOG_LEVEL", "WARNING")
    default_rate_plan: str = os.getenv("PSE_DEFAULT_RATE_PLAN", "ulo")
    ai_mode: bool = _env_bool("PSE_AI_MODE")
    rate_escalation: float = float(os.getenv("PSE_RATE_ESCALATION", "0.05"))
    system_degradation: float = float(os.getenv("PSE_SYSTEM_DEGRADATION", "0.005"))
    projection_years: int = int(os.getenv("PSE_PROJECTION_YEARS", "25"))


settings = Settings()

