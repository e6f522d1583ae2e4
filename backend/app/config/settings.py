"""
Application Settings for SynthAI

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Authentication accepts JWTs from either the ``Authorization: Bearer``
    header or the session cookie. Tokens are verified with:
    - AUTH_JWKS_URL: asymmetric keys published by the auth provider
    - AUTH_JWT_SECRET: HS256 shared secret (also signs session cookies)
    """

    # Application Settings
    app_name: str = "SynthAI"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # CORS / public URLs
    app_url: str = "http://localhost:3000"
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Authentication
    auth_jwt_secret: Optional[str] = None
    auth_jwks_url: Optional[str] = None
    auth_jwt_issuer: Optional[str] = None
    auth_jwt_audience: Optional[str] = None
    session_cookie_name: str = "session"
    session_ttl_hours: int = 24

    # Free tier quota (gated invocations per period)
    free_limit: int = 5

    # Database Configuration (SQLModel/SQLAlchemy)
    database_url: str = "sqlite+aiosqlite:///./synthai.db"
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False
    database_auto_create: bool = False

    # Google AI Configuration (accepts GOOGLE_API_KEY or GEMINI_API_KEY)
    google_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    llm_temperature: float = 0.7
    llm_max_output_tokens: int = 2048

    # Stripe
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_price_id: Optional[str] = None

    # PayPal
    paypal_api_base: str = "https://api-m.sandbox.paypal.com"
    paypal_client_id: Optional[str] = None
    paypal_client_secret: Optional[str] = None
    paypal_webhook_id: Optional[str] = None
    paypal_plan_id_monthly: Optional[str] = None
    paypal_plan_id_yearly: Optional[str] = None
    paypal_timeout_seconds: float = 30.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_credentials(self) -> "Settings":
        """Normalize API keys and require a token verifier in production."""
        # Normalize gemini_api_key to google_api_key
        if not self.google_api_key and self.gemini_api_key:
            self.google_api_key = self.gemini_api_key

        if self.free_limit < 0:
            raise ValueError("FREE_LIMIT must be >= 0")

        if self.is_production and not (self.auth_jwt_secret or self.auth_jwks_url):
            raise ValueError(
                "AUTH_JWT_SECRET or AUTH_JWKS_URL required when ENVIRONMENT=production"
            )

        return self

    @property
    def async_database_url(self) -> str:
        """Database URL with an async driver."""
        database_url = self.database_url
        if database_url.startswith("postgresql://"):
            database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif database_url.startswith("sqlite://"):
            database_url = database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return database_url

    @property
    def paypal_plans(self) -> dict[str, Optional[str]]:
        """PayPal billing plan IDs keyed by plan name."""
        return {
            "monthly": self.paypal_plan_id_monthly,
            "yearly": self.paypal_plan_id_yearly,
        }

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
