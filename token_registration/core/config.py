from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    APPS_SCRIPT_URL: str | None = None
    HTTP_TIMEOUT_SECONDS: float = 10.0

    SUBMIT_BACKOFF_DELAYS_MS: list[int] = [400, 800, 1600, 3200, 6400]
    SEARCH_DEBOUNCE_MS: int = 500
    MIN_PHONE_DIGITS: int = 9
    SCHEDULE_POLL_INTERVAL_SECONDS: float = 15.0
    REGISTRATION_STATUS_CACHE_SECONDS: float = 300.0
    FORM_IDLE_TTL_SECONDS: float = 1800.0

    OUTCOME_STORE_DIR: str = "./data/outcomes"


settings = Settings()
