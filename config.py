from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    app_name: str = "Transaction Ledger"
    app_version: str = "1.0.0"
    environment: str = "production"
    debug: bool = False

    # Logging settings (always written to stderr)
    log_level: str = "WARNING"
    log_format: Literal["json", "text"] = "json"

    # Output settings
    sort_output: bool = True  # ascending client id

    # Engine behaviour
    check_invariants: bool = False
    enforce_account_lock: bool = False  # reject deposits/withdrawals on locked accounts


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Environment-specific configurations
class DevelopmentSettings(Settings):
    environment: str = "development"
    debug: bool = True
    log_level: str = "DEBUG"
    log_format: Literal["json", "text"] = "text"
    check_invariants: bool = True


class ProductionSettings(Settings):
    environment: str = "production"
    debug: bool = False
    log_level: str = "WARNING"
    check_invariants: bool = False


class TestingSettings(Settings):
    environment: str = "testing"
    debug: bool = True
    log_level: str = "WARNING"  # Reduce noise in tests
    log_format: Literal["json", "text"] = "text"


def get_settings_for_environment(env: str = "production") -> Settings:
    """Get settings for specific environment."""
    settings_map = {
        "development": DevelopmentSettings,
        "production": ProductionSettings,
        "testing": TestingSettings,
    }

    settings_class = settings_map.get(env.lower(), Settings)
    return settings_class()
