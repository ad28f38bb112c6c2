"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, Stripe secrets, cookie policy, etc.)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="memento",
        description="MongoDB database name"
    )

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = Field(
        default=None,
        description="Stripe secret API key"
    )
    STRIPE_WEBHOOK_SECRET: Optional[str] = Field(
        default=None,
        description="Webhook signing secret (whsec_...)"
    )
    STRIPE_PRICE_ID: Optional[str] = Field(
        default=None,
        description="Stripe price id for the premium unlock; overrides inline price data"
    )

    # Inline price data (used when STRIPE_PRICE_ID is not set)
    PRODUCT_NAME: str = Field(
        default="Nrglitch Premium",
        description="Product name shown on the checkout page"
    )
    PRODUCT_DESCRIPTION: str = Field(
        default="Lifetime access to all premium features",
        description="Product description shown on the checkout page"
    )
    PRODUCT_CURRENCY: str = Field(
        default="eur",
        description="ISO currency code for inline price data"
    )
    PRODUCT_UNIT_AMOUNT: Optional[int] = Field(
        default=None,
        description="Price in the currency's smallest unit (cents)"
    )

    # Redirect targets
    APP_URL: Optional[str] = Field(
        default="http://localhost:3000",
        description="Externally reachable base URL (checkout redirects)"
    )
    SUCCESS_PATH: str = Field(
        default="/payment-success",
        description="Path Stripe redirects to after a successful payment"
    )
    CANCEL_PATH: str = Field(
        default="/payment-cancelled",
        description="Path Stripe redirects to when the user cancels"
    )

    # Session Management
    SESSION_COOKIE_NAME: str = Field(
        default="sessionId",
        description="Name of the session cookie"
    )
    SESSION_MAX_AGE_DAYS: int = Field(
        default=30,
        description="Absolute session lifetime in days"
    )
    BCRYPT_ROUNDS: int = Field(
        default=12,
        description="bcrypt cost factor for password hashing"
    )

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    @validator("STRIPE_SECRET_KEY")
    def validate_stripe_key(cls, v, values):
        """Ensure the Stripe key is set in production."""
        if values.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("STRIPE_SECRET_KEY is required in production environment")
        return v

    @validator("STRIPE_WEBHOOK_SECRET")
    def validate_webhook_secret(cls, v, values):
        """Ensure the webhook secret is set in production."""
        if values.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("STRIPE_WEBHOOK_SECRET is required in production environment")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def session_max_age_seconds(self) -> int:
        return self.SESSION_MAX_AGE_DAYS * 24 * 60 * 60

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency returning the process-wide settings."""
    return settings


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if settings.SESSION_MAX_AGE_DAYS <= 0:
        errors.append("SESSION_MAX_AGE_DAYS must be positive")

    if settings.BCRYPT_ROUNDS < 4 or settings.BCRYPT_ROUNDS > 31:
        errors.append("BCRYPT_ROUNDS must be between 4 and 31")

    # Production-specific validations
    if settings.is_production:
        if not settings.STRIPE_SECRET_KEY:
            errors.append("STRIPE_SECRET_KEY is required in production")
        if not settings.STRIPE_WEBHOOK_SECRET:
            errors.append("STRIPE_WEBHOOK_SECRET is required in production")
        if not settings.STRIPE_PRICE_ID and settings.PRODUCT_UNIT_AMOUNT is None:
            errors.append("STRIPE_PRICE_ID or PRODUCT_UNIT_AMOUNT is required in production")
        if not settings.APP_URL:
            errors.append("APP_URL is required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
