"""Shared test helper functions for Mari agent tests.

Regular functions and classes (not fixtures) importable by conftest.py and
individual test files.
"""

from __future__ import annotations

import json
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from mari.domain.classifier import IntentClassifier
from mari.domain.dispatch import ActionDispatcher
from mari.domain.media import MediaInterpreter
from mari.domain.pipeline import MessagePipeline
from mari.infra.cart import CartResult, InMemoryCart
from mari.infra.context_store import InMemoryContextStore
from mari.infra.media_download import MediaDownloader
from mari.infra.payments import SimulatedPaymentGateway
from mari.llm.client import LanguageModelClient


class LogRecorder:
    """Simple recorder to capture log calls deterministically."""

    def __init__(self):
        self.calls: list[tuple[str, tuple, dict]] = []

    def _record(self, level: str, *args, **kwargs):
        self.calls.append((level, args, kwargs))

    def info(self, *args, **kwargs):
        self._record("info", *args, **kwargs)

    def warning(self, *args, **kwargs):
        self._record("warning", *args, **kwargs)

    def error(self, *args, **kwargs):
        self._record("error", *args, **kwargs)

    def exception(self, *args, **kwargs):
        self._record("exception", *args, **kwargs)

    def debug(self, *args, **kwargs):
        self._record("debug", *args, **kwargs)

    def get_all_logged_content(self) -> str:
        """Concatenate all args and kwargs from all calls into one string."""
        parts = []
        for _, args, kwargs in self.calls:
            parts.append(str(args))
            parts.append(str(kwargs))
        return " ".join(parts)

    def messages(self, level: str | None = None) -> list[str]:
        return [
            args[0]
            for lvl, args, _ in self.calls
            if args and (level is None or lvl == level)
        ]

    def extra_fields(self, message: str) -> dict:
        for _, args, kwargs in self.calls:
            if args and args[0] == message:
                return kwargs.get("extra", {}).get("extra_fields", {})
        raise AssertionError(f"no log call with message {message!r}")


def fake_llm(
    *,
    complete=None,
    describe_image=None,
    transcribe=None,
) -> MagicMock:
    """LanguageModelClient double with async methods.

    Each argument is used as return_value, or as side_effect when it is an
    exception instance or a callable.
    """
    llm = MagicMock(spec=LanguageModelClient)
    llm.complete = _async_method(complete)
    llm.describe_image = _async_method(describe_image)
    llm.transcribe = _async_method(transcribe)
    return llm


def _async_method(behavior) -> AsyncMock:
    if isinstance(behavior, BaseException) or callable(behavior):
        return AsyncMock(side_effect=behavior)
    return AsyncMock(return_value=behavior)


def model_json(**fields) -> str:
    """Model answer as the JSON text the backend would return."""
    return json.dumps(fields)


def stub_cart(
    *,
    result: CartResult | None = None,
    status=None,
    error: Exception | None = None,
) -> MagicMock:
    cart = MagicMock()
    cart.update = AsyncMock(return_value=result, side_effect=error)
    cart.status = AsyncMock(return_value=status)
    return cart


def make_pipeline(
    llm=None,
    *,
    cart=None,
    payments=None,
    context_store=None,
    downloader: MediaDownloader | None = None,
    timeout: float = 2.0,
) -> MessagePipeline:
    """Pipeline with in-memory collaborators unless overridden."""

    return MessagePipeline(
        media=MediaInterpreter(llm, downloader or MediaDownloader(), timeout=timeout),
        classifier=IntentClassifier(
            context_store or InMemoryContextStore(), llm, timeout=timeout
        ),
        dispatcher=ActionDispatcher(
            cart or InMemoryCart(),
            payments or SimulatedPaymentGateway(),
            default_product_id="123",
            default_payment_amount=Decimal("150.00"),
        ),
    )
