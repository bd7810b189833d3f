"""Configuration management using Pydantic Settings"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine tunables loaded from SPARELY_* environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="SPARELY_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Database
    database_url: str = "sqlite:///./sparely.db"

    # Service
    service_name: str = "sparely-core"
    log_level: str = "INFO"
    metrics_port: Optional[int] = None  # serve /metrics when set

    # Smart transfer
    min_transfer_cents: int = 1000  # $10.00
    batch_window_minutes: int = 3

    # Allocation
    allocation_budget_cap: float = 0.5
    recommendation_budget_cap: float = 0.45
    adjust_for_included_tax: bool = False

    # Profile defaults
    default_country_code: str = "US"
    saving_tax_rate: float = 0.04

    # Budget advisor
    budget_history_months: int = 6

    @property
    def batch_window_millis(self) -> int:
        return self.batch_window_minutes * 60_000


settings = Settings()
