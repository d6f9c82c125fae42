"""Runtime settings loaded from environment variables.

Settings are read once at app creation. Missing integration credentials are
not fatal: the service starts degraded and the health check reports it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

DEFAULT_CHAT_MODEL = "gpt-4o-mini"
DEFAULT_TRANSCRIPTION_MODEL = "whisper-1"

# Whisper upload limit
DEFAULT_MEDIA_MAX_BYTES = 25 * 1024 * 1024


@dataclass(frozen=True)
class Settings:
    """Configuration for integrations, limits and business defaults."""

    openai_api_key: str = ""
    chat_model: str = DEFAULT_CHAT_MODEL
    vision_model: str = DEFAULT_CHAT_MODEL
    transcription_model: str = DEFAULT_TRANSCRIPTION_MODEL
    llm_timeout_seconds: float = 15.0
    media_max_bytes: int = DEFAULT_MEDIA_MAX_BYTES
    environment: str = "development"
    service_version: str = "1.0.0"
    rate_limit_max_requests: int = 200
    rate_limit_window_seconds: int = 15 * 60
    woo_store_url: str = ""
    payment_api_key: str = ""
    default_product_id: str = "123"
    default_payment_amount: Decimal = Decimal("150.00")

    @property
    def llm_configured(self) -> bool:
        return bool(self.openai_api_key)


def load_settings() -> Settings:
    """Build Settings from the environment.

    Raises:
        ValueError: If a numeric variable cannot be parsed.
    """
    return Settings(
        openai_api_key=os.environ.get("OPENAI_API_KEY", ""),
        chat_model=os.environ.get("OPENAI_MODEL", DEFAULT_CHAT_MODEL),
        vision_model=os.environ.get("OPENAI_VISION_MODEL")
        or os.environ.get("OPENAI_MODEL", DEFAULT_CHAT_MODEL),
        transcription_model=os.environ.get(
            "OPENAI_TRANSCRIPTION_MODEL", DEFAULT_TRANSCRIPTION_MODEL
        ),
        llm_timeout_seconds=_positive_float("LLM_TIMEOUT_SECONDS", 15.0),
        media_max_bytes=_positive_int("MEDIA_MAX_BYTES", DEFAULT_MEDIA_MAX_BYTES),
        environment=os.environ.get("APP_ENV", "development"),
        service_version=os.environ.get("SERVICE_VERSION", "1.0.0"),
        rate_limit_max_requests=_positive_int("RATE_LIMIT_MAX_REQUESTS", 200),
        rate_limit_window_seconds=_positive_int("RATE_LIMIT_WINDOW_SECONDS", 15 * 60),
        woo_store_url=os.environ.get("WOO_STORE_URL", ""),
        payment_api_key=os.environ.get("PAYMENT_API_KEY", ""),
        default_product_id=os.environ.get("DEFAULT_PRODUCT_ID", "123"),
        default_payment_amount=_positive_decimal("DEFAULT_PAYMENT_AMOUNT", "150.00"),
    )


def _positive_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    value = int(raw)
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _positive_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    value = float(raw)
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _positive_decimal(name: str, default: str) -> Decimal:
    raw = os.environ.get(name) or default
    try:
        value = Decimal(raw)
    except InvalidOperation as exc:
        raise ValueError(f"{name} is not a valid amount: {raw!r}") from exc
    if not value.is_finite() or value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value
