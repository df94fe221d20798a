"""Runtime configuration for the Storefront services.

All settings come from environment variables, read once per process:

    STOREFRONT_ENV            development | test | staging | production
    DATABASE_URL              SQLAlchemy URL (default: local SQLite file)
    PAYMENT_GATEWAY           fake | stripe
    PAYMENT_GATEWAY_TIMEOUT   seconds allowed per gateway call
    STRIPE_API_KEY            required when PAYMENT_GATEWAY=stripe
    PAYMENT_RETURN_URL        where the gateway sends the customer back
"""

import os
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class Settings:
    env: str
    database_url: str
    payment_gateway: str
    payment_gateway_timeout: float
    stripe_api_key: str | None
    payment_return_url: str

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            env=os.environ.get("STOREFRONT_ENV", "development").lower(),
            database_url=os.environ.get("DATABASE_URL", "sqlite:///storefront.db"),
            payment_gateway=os.environ.get("PAYMENT_GATEWAY", "fake"),
            payment_gateway_timeout=float(os.environ.get("PAYMENT_GATEWAY_TIMEOUT", "10")),
            stripe_api_key=os.environ.get("STRIPE_API_KEY"),
            payment_return_url=os.environ.get("PAYMENT_RETURN_URL", "http://localhost:8000/checkout/return"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
