"""Configuration surface for the JIT card demo."""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MARQETA_SANDBOX_URL = "https://sandbox-api.marqeta.com/v3"


class JitCardSettings(BaseSettings):
    """Main jitcard configuration."""

    model_config = SettingsConfigDict(
        env_prefix="JITCARD_",
        env_file=".env",
        extra="ignore",
    )

    # Environment
    environment: Literal["dev", "sandbox", "prod"] = "dev"

    # Marqeta Core API
    marqeta_base_url: str = MARQETA_SANDBOX_URL
    marqeta_app_token: str = ""
    marqeta_admin_token: str = ""

    # Card program
    balance_limit_cents: int = Field(default=10000, gt=0)
    velocity_window: str = "DAY"
    currency_code: str = "USD"
    card_product_start_date: str = "2025-01-01"

    # Credentials attached to simulated authorizations that request webhooks
    webhook_username: str = "webhook_user"
    webhook_password: str = "webhook_password"

    # PIN-gated payments
    demo_pin: str = "123456"
    card_pins: Dict[str, str] = Field(default_factory=lambda: {
        "5112345123451234": "123456",
    })

    # CORS - allowed origins for the API
    allowed_origins: List[str] = Field(default_factory=lambda: [
        "http://localhost:3000",
    ])

    # Observability
    log_level: str = "INFO"
    log_json: Optional[bool] = None

    @field_validator("marqeta_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_origins(cls, v):
        """Parse comma-separated origins from env var."""
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v

    @field_validator("card_pins", mode="before")
    @classmethod
    def parse_card_pins(cls, v):
        """Accept the PAN->PIN table as a JSON object string."""
        if isinstance(v, str):
            return json.loads(v) if v.strip() else {}
        return v

    @property
    def use_json_logs(self) -> bool:
        if self.log_json is not None:
            return self.log_json
        return self.environment != "dev"


@lru_cache
def load_settings(env_file: str | None = None) -> JitCardSettings:
    """Load JitCardSettings once per process to keep services consistent."""
    env_path = Path(env_file) if env_file else Path(".env")
    return JitCardSettings(_env_file=env_path)
