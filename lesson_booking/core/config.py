from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    HUB_TIMEZONE: str = "America/Los_Angeles"

    STORE_PROVIDER: str = "memory"  # "memory" | "supabase"
    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_KEY: str | None = None
    SUPABASE_TIMEOUT_SECONDS: float = 10.0

    CALENDAR_EVENT_TYPE: str = "private_lesson"
    SEAT_CLAIM_MAX_RETRIES: int = 3

    DEFAULT_LESSON_DURATION_MINUTES: int = 30
    DEFAULT_MAX_GYMNASTS: int = 1
    SLOT_LOOKAHEAD_DAYS: int = 28


settings = Settings()
