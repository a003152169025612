from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "dev"
    database_url: str = "sqlite:///./farecast.db"

    scheduler_enabled: bool = True
    housekeeping_interval_hours: int = 6

    # Retention windows
    history_retention_days: int = 90
    seasonal_freshness_days: int = 180

    # Timeouts / retries for outbound calls
    provider_timeout_seconds: float = 20.0
    provider_max_retries: int = 1
    provider_retry_delay: float = 1.0
    storage_timeout_seconds: float = 5.0

    amadeus_client_id: str = ""
    amadeus_client_secret: str = ""
    amadeus_base_url: str = "https://test.api.amadeus.com"

    skyscanner_api_key: str = ""
    skyscanner_base_url: str = "https://partners.api.skyscanner.net"

    serpapi_key: str = ""
    serpapi_country: str = "in"

    def model_post_init(self, __context):
        if self.env == "prod" and self.database_url.startswith("sqlite"):
            raise ValueError(
                "Production requires explicit DATABASE_URL (not SQLite)"
            )


@lru_cache
def get_settings() -> Settings:
    return Settings()
