"""
Application configuration

SECURITY: Defaults are fail-safe for production.
- DEBUG defaults to False
- SELLER_API_KEY has no usable default (seller endpoints stay locked)
- Runtime validation catches insecure or inconsistent configurations
"""
import json
import os
import logging
from typing import List, Union
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Default CORS origins
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:9002",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:9002",
]

STORAGE_BACKENDS = ("memory", "database", "redis")
PRODUCT_BACKENDS = ("storage", "database")
PAYMENT_PROVIDERS = ("mock", "stripe")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App - defaults are PRODUCTION safe
    APP_NAME: str = "Storefront"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"

    # Database (only required when a backend uses it)
    DATABASE_URL: str = ""

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def convert_database_url(cls, v):
        """Convert plain postgres:// URLs to the asyncpg driver format."""
        if not v:
            return v
        if v.startswith("postgres://"):
            v = v.replace("postgres://", "postgresql+asyncpg://", 1)
        elif v.startswith("postgresql://") and "+asyncpg" not in v:
            v = v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 3600

    # Redis
    REDIS_URL: str = ""

    # Key-value storage for carts, wishlists, addresses, coupons
    STORAGE_BACKEND: str = "database"
    STORAGE_KEY_PREFIX: str = "storefront"
    PRODUCT_BACKEND: str = "database"
    SEED_DEFAULT_COUPONS: bool = True

    # Display
    CURRENCY_SYMBOL: str = "₹"

    # Checkout sessions held in memory (least recently used dropped first)
    CHECKOUT_MAX_SESSIONS: int = 10000

    # Seller access
    SELLER_API_KEY: str = ""

    # Payments
    PAYMENT_PROVIDER: str = "mock"
    PAYMENT_SIMULATED_DELAY_SECONDS: float = 1.5
    STRIPE_SECRET_KEY: str = ""
    STRIPE_CURRENCY: str = "inr"

    # CORS - accepts JSON array or comma-separated string
    CORS_ORIGINS: Union[str, List[str]] = DEFAULT_CORS_ORIGINS

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            if not v or v.strip() == "":
                return DEFAULT_CORS_ORIGINS
            # Try JSON first
            if v.startswith("["):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            # Fallback to comma-separated
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "100/minute"
    RATE_LIMIT_CHECKOUT: str = "10/minute"

    @model_validator(mode="after")
    def validate_backends(self):
        """Reject backend selections that cannot work with the given URLs."""
        if self.STORAGE_BACKEND not in STORAGE_BACKENDS:
            raise ValueError(f"STORAGE_BACKEND must be one of {STORAGE_BACKENDS}")
        if self.PRODUCT_BACKEND not in PRODUCT_BACKENDS:
            raise ValueError(f"PRODUCT_BACKEND must be one of {PRODUCT_BACKENDS}")
        if self.PAYMENT_PROVIDER not in PAYMENT_PROVIDERS:
            raise ValueError(f"PAYMENT_PROVIDER must be one of {PAYMENT_PROVIDERS}")

        uses_database = self.STORAGE_BACKEND == "database" or self.PRODUCT_BACKEND == "database"
        if uses_database and not self.DATABASE_URL:
            raise ValueError("DATABASE_URL is required when a database backend is selected")
        if self.STORAGE_BACKEND == "redis" and not self.REDIS_URL:
            raise ValueError("REDIS_URL is required when STORAGE_BACKEND=redis")
        if self.PAYMENT_PROVIDER == "stripe" and not self.STRIPE_SECRET_KEY:
            raise ValueError("STRIPE_SECRET_KEY is required when PAYMENT_PROVIDER=stripe")
        return self

    @model_validator(mode="after")
    def validate_production_config(self):
        """Runtime validation to catch insecure production configurations."""
        if self.ENVIRONMENT == "production":
            errors = []

            if self.DEBUG:
                errors.append(
                    "DEBUG=True is forbidden in production. "
                    "Set DEBUG=false or ENVIRONMENT=development"
                )

            insecure_keys = ["seller", "secret", "password", "changeme"]
            if not self.SELLER_API_KEY or len(self.SELLER_API_KEY) < 16:
                errors.append(
                    "SELLER_API_KEY must be set to at least 16 characters in production. "
                    "Generate one: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
                )
            elif any(bad in self.SELLER_API_KEY.lower() for bad in insecure_keys):
                errors.append("Insecure SELLER_API_KEY detected in production.")

            if self.STORAGE_BACKEND == "memory":
                errors.append("STORAGE_BACKEND=memory loses all carts on restart; forbidden in production.")

            for origin in self.CORS_ORIGINS:
                if origin == "*":
                    errors.append("Wildcard '*' CORS origin is forbidden in production")
                elif "localhost" in origin or "127.0.0.1" in origin:
                    errors.append(f"Localhost CORS origin '{origin}' is forbidden in production")

            if errors:
                raise ValueError(
                    "PRODUCTION SECURITY VIOLATIONS:\n" + "\n".join(f"  - {e}" for e in errors)
                )

        return self


# Try to load settings, provide helpful error on failure
try:
    settings = Settings()
except Exception:
    # In development, allow fallback defaults
    if os.getenv("ENVIRONMENT", "development") == "development":
        logger.warning(
            "Settings validation failed, using development defaults. "
            "Set STORAGE_BACKEND, DATABASE_URL and SELLER_API_KEY in .env file."
        )
        os.environ["ENVIRONMENT"] = "development"
        os.environ.setdefault("STORAGE_BACKEND", "memory")
        os.environ.setdefault("PRODUCT_BACKEND", "storage")
        os.environ.setdefault("SELLER_API_KEY", "dev-only-seller-key")
        settings = Settings()
    else:
        raise
