"""Runtime configuration loaded from SPENDLENS_* environment variables or .env."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SPENDLENS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    timezone: str = "Asia/Ho_Chi_Minh"
    currency: str = "VND"

    # Server-computed insights; empty disables the server path.
    insights_url: str = ""
    api_token: Optional[str] = None
    request_timeout: float = 8.0

    transactions_path: str = "data/transactions.json"
    wallets_path: str = "data/wallets.json"

    log_level: str = "INFO"
    log_format: str = "text"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
