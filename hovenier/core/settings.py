# hovenier/core/settings.py
from decimal import Decimal
from functools import lru_cache
from typing import Dict, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # --- Database ---
    DATABASE_URL: str = "sqlite:///./hovenier.db"

    # --- Tarieven / marges (bedrijfsinstellingen) ---
    DEFAULT_HOURLY_RATE: Decimal = Decimal("45")
    DEFAULT_MARGIN_PERCENT: Decimal = Decimal("15")
    SCOPE_MARGIN_PERCENT: Dict[str, Decimal] = {}
    VAT_PERCENT: Decimal = Decimal("21")

    # --- Facturatie ---
    PAYMENT_TERM_DAYS: int = 14
    QUOTE_NUMBER_PREFIX: str = "OFF-"
    INVOICE_NUMBER_PREFIX: str = "FAC-"

    # --- Voorcalculatie ---
    EFFECTIVE_HOURS_PER_DAY: Decimal = Decimal("7")
    PLANNING_BUFFER_PERCENT: Decimal = Decimal("10")

    # --- Wizard auto-save ---
    AUTOSAVE_DEBOUNCE_MS: int = 2000

    # --- Publieke offerte-links ---
    SHARE_TOKEN_SECRET: str = "dev_secret_change_me_please"
    SHARE_TOKEN_TTL_DAYS: int = 30
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Optioneel: eigen normuren-tabel (YAML) i.p.v. de meegeleverde
    NORM_TABLE_PATH: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="HOVENIER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()  # leest .env
