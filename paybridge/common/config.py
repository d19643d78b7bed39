"""Environment-driven settings for the payment intent service.

The process loads one `Settings` at startup; components receive it explicitly
so tests can construct their own with fake secrets (see `.env.example`).
"""

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "paybridge"
    log_level: str = "INFO"
    stripe_secret_key: SecretStr = SecretStr("")
    stripe_publishable_key: str = ""
    stripe_webhook_secret: SecretStr = SecretStr("")
    stripe_api_base: str = "https://api.stripe.com"
    processor_timeout_seconds: float = 10.0
    min_amount_minor_units: int = 50
    default_currency: str = "usd"
    webhook_tolerance_seconds: int = 300
    status_requery: bool = True
    otel_exporter_otlp_endpoint: str = ""
    host: str = "0.0.0.0"
    port: int = 8080
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
