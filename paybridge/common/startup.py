"""Startup-time helpers for safe config logging."""

from pydantic import SecretStr

from paybridge.common.config import Settings
from paybridge.common.logging import logger

_SECRET_MARKERS = ("KEY", "SECRET", "PASSWORD", "TOKEN")


def _safe_value(name: str, value) -> str:
    """Return a printable setting value, redacting secret-like names."""

    if isinstance(value, SecretStr):
        value = value.get_secret_value()
    if value is None or value == "":
        return "<unset>"
    if any(marker in name.upper() for marker in _SECRET_MARKERS):
        return "<redacted>"
    return str(value)


def redacted_config(settings: Settings, keys: list[str]) -> dict[str, str]:
    config = {"service": settings.service_name}
    for key in keys:
        config[key] = _safe_value(key, getattr(settings, key, None))
    return config


def log_startup_config(settings: Settings, keys: list[str]) -> None:
    """Log selected startup config keys for quick troubleshooting."""

    logger.info("startup_config=%s", redacted_config(settings, keys))
