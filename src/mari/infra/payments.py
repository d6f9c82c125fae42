"""Payment collaborator.

Real gateway integration is out of scope. SimulatedPaymentGateway answers
like the upstream PIX/card flows do, with deterministic references so the
same request always yields the same links.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from mari.domain.intents import PAYMENT_METHOD_CARD, PAYMENT_METHOD_PIX
from mari.observability.logging import get_logger
from mari.observability.redaction import safe_log_context

logger = get_logger(__name__)

PIX_QR_CODE_BASE_URL = "https://simulado.pix/qrcode/"
CARD_PAYMENT_BASE_URL = "https://simulado.pagamento/link/"
PIX_EXPIRATION = "30 minutos"


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    response_text: str
    type: str | None = None
    qr_code_link: str | None = None
    payment_link: str | None = None
    expiration_time: str | None = None


class PaymentCollaborator(Protocol):
    async def initiate(
        self, conversation_id: str, amount: Decimal, method: str
    ) -> PaymentResult:
        ...


def _payment_reference(conversation_id: str, amount: Decimal, method: str) -> str:
    """Deterministic reference: first 12 chars of sha256."""
    return hashlib.sha256(
        f"{conversation_id}|{amount:.2f}|{method}".encode()
    ).hexdigest()[:12]


class SimulatedPaymentGateway:
    """Stand-in for the PIX / card payment provider."""

    async def initiate(
        self, conversation_id: str, amount: Decimal, method: str
    ) -> PaymentResult:
        logger.info(
            "initiating payment",
            extra={"extra_fields": safe_log_context(amount=f"{amount:.2f}", method=method)},
        )

        reference = _payment_reference(conversation_id, amount, method)

        if method == PAYMENT_METHOD_PIX:
            return PaymentResult(
                success=True,
                type=PAYMENT_METHOD_PIX,
                response_text=f"PIX gerado: R$ {amount:.2f}. Use o QR Code para pagar.",
                qr_code_link=PIX_QR_CODE_BASE_URL + reference,
                expiration_time=PIX_EXPIRATION,
            )
        if method == PAYMENT_METHOD_CARD:
            return PaymentResult(
                success=True,
                type=PAYMENT_METHOD_CARD,
                response_text=f"Link de pagamento por cartão gerado: R$ {amount:.2f}.",
                payment_link=CARD_PAYMENT_BASE_URL + reference,
            )
        return PaymentResult(success=False, response_text="Método de pagamento não suportado.")
