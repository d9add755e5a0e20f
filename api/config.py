import os
from functools import lru_cache

from pydantic import BaseModel


class Settings(BaseModel):
    database_url: str = os.getenv(
        "DATABASE_URL",
        "postgresql+asyncpg://falbites:falbites@db:5432/falbites",
    )
    db_echo: bool = os.getenv("DB_ECHO", "false").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    cors_origins: list[str] = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
    ]

    # Used until an app_settings row overrides it
    default_cutoff_time: str = os.getenv("DEFAULT_CUTOFF_TIME", "8:30 PM")
    # IST; calendar dates are rendered at this offset regardless of server tz
    schedule_utc_offset_minutes: int = int(os.getenv("SCHEDULE_UTC_OFFSET_MINUTES", "330"))

    enable_scheduler: bool = os.getenv("ENABLE_SCHEDULER", "true").lower() == "true"
    scheduler_timezone: str = os.getenv("SCHEDULER_TIMEZONE", "Asia/Kolkata")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
