from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "local"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Security
    secret_key: str = "changeme"  # override in .env
    access_token_expire_minutes: int = 60

    # Database
    database_url: str = "sqlite:///./meditrack.db"

    # Inventory defaults
    default_min_stock_threshold: int = 10
    expiry_warning_days: int = 90
    bulk_import_description: str = "Bulk import"

    # Point of sale
    walk_in_customer_label: str = "Walk-in customer"

    # Pydantic v2 style config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance so the .env is parsed once.
    """
    return Settings()
