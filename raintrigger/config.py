"""Application configuration."""
from decimal import Decimal
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# EPA CGP 2022 section 4.2: inspect after 0.25" of rain in 24 hours.
EPA_RAIN_THRESHOLD_INCHES = Decimal("0.25")
EPA_REGULATION_ID = "EPA_CGP_2022_SECTION_4_2"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./raintrigger.db"

    # Application
    APP_ENV: str = "development"
    API_V1_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"
    FRONTEND_URL: str = "http://localhost:3000"

    # Regulation
    RAIN_THRESHOLD_INCHES: Decimal = EPA_RAIN_THRESHOLD_INCHES
    REGULATION_ID: str = EPA_REGULATION_ID

    # Inspection deadline calendar
    DEFAULT_PROJECT_TIMEZONE: str = "America/New_York"
    INSPECTION_WINDOW_HOURS: int = 24
    WORKING_HOURS_ONLY: bool = True
    DEADLINE_POLICY: str = "next_business_window"  # or "working_hour_budget"
    WORKDAY_START_HOUR: int = 7
    WORKDAY_END_HOUR: int = 17

    # Duplicate suppression and escalation
    COOLDOWN_HOURS: int = 24
    ESCALATION_THRESHOLD_HOURS: float = 2.0
    ESCALATION_CHECK_MINUTES: int = 5
    RAIN_CHECK_INTERVAL_MINUTES: int = 60

    # Weather providers
    WEATHER_TIMEOUT_SECONDS: float = 5.0
    NOAA_USER_AGENT: str = "raintrigger (compliance@example.com)"
    OPENWEATHER_API_KEY: str = ""

    # Notifications
    NOTIFICATION_WEBHOOK_URL: str = ""

    @field_validator("RAIN_THRESHOLD_INCHES")
    @classmethod
    def threshold_must_match_regulation(cls, value: Decimal) -> Decimal:
        # Any other value is a compliance violation, refuse to start.
        if value != EPA_RAIN_THRESHOLD_INCHES:
            raise ValueError(
                f"EPA compliance violation: rain threshold is {value} but must be exactly "
                f"{EPA_RAIN_THRESHOLD_INCHES} inches"
            )
        return value

    @field_validator("WORKDAY_END_HOUR")
    @classmethod
    def workday_must_not_be_empty(cls, value: int, info) -> int:
        start = info.data.get("WORKDAY_START_HOUR", 7)
        if not 0 < value <= 23 or value <= start:
            raise ValueError(f"WORKDAY_END_HOUR must be after WORKDAY_START_HOUR ({start})")
        return value

    # CORS
    @property
    def ALLOWED_ORIGINS(self) -> List[str]:
        if self.APP_ENV == "development":
            return ["*"]
        return [self.FRONTEND_URL]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
