from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """
    Settings class to retrieve environment variables.
    """

    DATABASE_URL: str
    ADMIN_API_KEY: str
    LOG_LEVEL: str = "INFO"

    # Scheduling
    SERVICE_TIMEZONE: str = "America/New_York"
    MIN_LEAD_TIME_MINUTES: int = 105
    ADMISSION_HORIZON_DAYS: int = 7
    COURIER_CAPACITY_LU: float = 20.0
    ORDER_CODE_MAX_ATTEMPTS: int = 50

    # Stripe Configuration
    STRIPE_SECRET_KEY: str
    STRIPE_API_BASE: str = "https://api.stripe.com"
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    PAYMENT_CURRENCY: str = "usd"

    model_config = SettingsConfigDict(
        env_file='.env',
        extra='ignore',
    )


Config = Settings()
