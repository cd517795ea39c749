import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent
ENV_PATH = BASE_DIR.parent / ".env"
load_dotenv(ENV_PATH)


@dataclass(frozen=True)
class Settings:
    database_url: str = f"sqlite:///{BASE_DIR.parent / 'cadence.sqlite'}"
    timezone: str = "UTC"
    pending_interval_minutes: int = 15
    log_level: str = "INFO"


def get_settings() -> Settings:
    db_url = os.getenv("DATABASE_URL") or Settings.database_url
    timezone = os.getenv("TZ") or Settings.timezone
    interval_raw = os.getenv("CADENCE_PENDING_INTERVAL_MINUTES")
    try:
        interval = max(1, int(interval_raw)) if interval_raw else Settings.pending_interval_minutes
    except ValueError:
        raise RuntimeError("CADENCE_PENDING_INTERVAL_MINUTES must be an integer") from None
    log_level = (os.getenv("LOG_LEVEL") or Settings.log_level).upper()
    return Settings(
        database_url=db_url,
        timezone=timezone,
        pending_interval_minutes=interval,
        log_level=log_level,
    )
