"""Intent classification records.

The language model answer is only partially trusted: everything is normalized
here, at the boundary, so downstream code only ever sees a ClassifiedIntent.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any


class Intent(str, Enum):
    ADD_TO_CART = "add_to_cart"
    INITIATE_PAYMENT = "initiate_payment"
    HANDOFF = "handoff"
    GENERAL_QUERY = "general_query"
    ERROR = "error"


PAYMENT_METHOD_PIX = "PIX"
PAYMENT_METHOD_CARD = "CARD"


class MalformedClassificationError(Exception):
    """Model output could not be read as a classification."""


@dataclass(frozen=True)
class ClassifiedIntent:
    """Result of classifying one user turn.

    Optional fields are None when the model omitted them or sent something
    unusable; the dispatcher applies the defaults.
    """

    intent: Intent
    response_text: str = ""
    product_id: str | None = None
    quantity: int | None = None
    total_amount: Decimal | None = None
    payment_method: str | None = None


def parse_classification(raw: str | None) -> ClassifiedIntent:
    """Parse raw model output into a ClassifiedIntent.

    Raises:
        MalformedClassificationError: If the text is not JSON, or is JSON
            that is neither an object nor a string.
    """
    if raw is None:
        raise MalformedClassificationError("empty model output")
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise MalformedClassificationError("model output is not json") from exc
    return normalize_classification(data)


def normalize_classification(data: Any) -> ClassifiedIntent:
    """Normalize a decoded model answer.

    A bare string is treated as a reply with no structured fields.
    """
    if isinstance(data, str):
        return ClassifiedIntent(intent=Intent.GENERAL_QUERY, response_text=data)
    if not isinstance(data, dict):
        raise MalformedClassificationError(
            f"unexpected model output type: {type(data).__name__}"
        )

    response_text = data.get("response_text")
    if response_text is None:
        response_text = ""
    elif not isinstance(response_text, str):
        response_text = str(response_text)

    return ClassifiedIntent(
        intent=_coerce_intent(data.get("intent")),
        response_text=response_text,
        product_id=_coerce_product_id(data.get("product_id")),
        quantity=_coerce_quantity(data.get("quantity")),
        total_amount=_coerce_amount(data.get("total_amount")),
        payment_method=_coerce_payment_method(data.get("payment_method")),
    )


def _coerce_intent(value: Any) -> Intent:
    """Unknown or missing intents fall back to general_query."""
    if isinstance(value, str):
        try:
            return Intent(value.strip().lower())
        except ValueError:
            pass
    return Intent.GENERAL_QUERY


def _coerce_product_id(value: Any) -> str | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, str)):
        text = str(value).strip()
        return text or None
    return None


def _coerce_quantity(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, int) and value > 0:
        return value
    return None


def _coerce_amount(value: Any) -> Decimal | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = _normalize_money_text(value)
    if not isinstance(value, (int, float, str)):
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def _normalize_money_text(value: str) -> str:
    """Accept "150.00", "150,00", "R$ 1.500,00"."""
    text = value.replace("R$", "").strip()
    if "," in text and "." in text:
        text = text.replace(".", "").replace(",", ".")
    elif "," in text:
        text = text.replace(",", ".")
    return text


def _coerce_payment_method(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    method = value.strip().upper()
    return method or None
