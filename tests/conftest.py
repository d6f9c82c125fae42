"""Shared pytest fixtures for Mari agent tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from mari.infra.settings import Settings  # noqa: E402

_ENV_VARS = (
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_VISION_MODEL",
    "OPENAI_TRANSCRIPTION_MODEL",
    "LLM_TIMEOUT_SECONDS",
    "MEDIA_MAX_BYTES",
    "APP_ENV",
    "SERVICE_VERSION",
    "RATE_LIMIT_MAX_REQUESTS",
    "RATE_LIMIT_WINDOW_SECONDS",
    "WOO_STORE_URL",
    "PAYMENT_API_KEY",
    "DEFAULT_PRODUCT_ID",
    "DEFAULT_PAYMENT_AMOUNT",
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Keep developer .env values out of tests; each test sets what it needs."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def configured_settings() -> Settings:
    """Every integration configured, so /health reports UP."""
    return Settings(
        openai_api_key="sk-test",
        woo_store_url="https://loja.example",
        payment_api_key="pay-test",
        llm_timeout_seconds=2.0,
    )
