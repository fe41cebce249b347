"""
Configuration for Ledger Cover Studio.

Settings are read from the process environment once at startup. A `.env`
file in the working directory is loaded first when present. Missing required
values raise ConfigurationError so the service refuses to start.
"""

import os
import logging
from functools import lru_cache
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",  # Vite development server
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


class ConfigurationError(RuntimeError):
    """Raised when required environment configuration is absent."""

    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(
            f"Missing required environment variables: {', '.join(missing)}"
        )


class Settings(BaseModel):
    # Hosted backend
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_key: str = Field(..., description="Supabase service role key")

    # Image generation
    google_ai_api_key: str = Field(..., description="Google AI (Imagen) API key")
    imagen_model: str = Field(default="imagen-4.0-generate-001")

    # Payments
    stripe_secret_key: str = Field(..., description="Stripe secret key")
    stripe_webhook_secret: str = Field(..., description="Stripe webhook signing secret")
    stripe_pro_price_id: str = Field(..., description="Stripe price for the pro plan")
    stripe_premium_price_id: str = Field(..., description="Stripe price for the premium plan")

    # Server
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    allowed_origins: List[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))

    @property
    def price_ids(self) -> Dict[str, str]:
        """Plan id to Stripe price id for every purchasable plan."""
        return {
            "pro": self.stripe_pro_price_id,
            "premium": self.stripe_premium_price_id,
        }

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (used by tests)

        Raises:
            ConfigurationError: if any required variable is missing or empty
        """
        env = os.environ if environ is None else environ

        required = {
            "supabase_url": env.get("SUPABASE_URL"),
            "supabase_key": env.get("SUPABASE_SERVICE_ROLE_KEY") or env.get("SUPABASE_KEY"),
            "google_ai_api_key": env.get("GOOGLE_AI_API_KEY"),
            "stripe_secret_key": env.get("STRIPE_SECRET_KEY"),
            "stripe_webhook_secret": env.get("STRIPE_WEBHOOK_SECRET"),
            "stripe_pro_price_id": env.get("STRIPE_PRO_PRICE_ID"),
            "stripe_premium_price_id": env.get("STRIPE_PREMIUM_PRICE_ID"),
        }
        env_names = {
            "supabase_url": "SUPABASE_URL",
            "supabase_key": "SUPABASE_SERVICE_ROLE_KEY",
            "google_ai_api_key": "GOOGLE_AI_API_KEY",
            "stripe_secret_key": "STRIPE_SECRET_KEY",
            "stripe_webhook_secret": "STRIPE_WEBHOOK_SECRET",
            "stripe_pro_price_id": "STRIPE_PRO_PRICE_ID",
            "stripe_premium_price_id": "STRIPE_PREMIUM_PRICE_ID",
        }
        missing = [env_names[key] for key, value in required.items() if not value]
        if missing:
            raise ConfigurationError(missing)

        origins = list(DEFAULT_ALLOWED_ORIGINS)
        if extra_origins := env.get("ALLOWED_ORIGINS"):
            origins.extend(origin.strip() for origin in extra_origins.split(",") if origin.strip())

        return cls(
            **required,
            imagen_model=env.get("IMAGEN_MODEL", "imagen-4.0-generate-001"),
            environment=env.get("ENVIRONMENT", "development"),
            debug=env.get("DEBUG", "false").lower() == "true",
            host=env.get("HOST", "0.0.0.0"),
            port=int(env.get("PORT", "8000")),
            allowed_origins=origins,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache settings for the running process."""
    load_dotenv()
    settings = Settings.from_env()
    logger.info(f"Configuration loaded for environment: {settings.environment}")
    return settings
