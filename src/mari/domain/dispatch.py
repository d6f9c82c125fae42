"""Intent-to-action dispatch.

Single-step state machine: a classified message in state "received" runs
exactly one handler and ends in state "responded". Handlers are looked up in
a table keyed by Intent; a new intent means a new enum member plus a new
table entry.

Collaborator failures never escape: they become success=False results with
a user-safe apology and the action stays "reply".
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from mari.domain.intents import ClassifiedIntent, Intent, PAYMENT_METHOD_PIX
from mari.domain.messages import CartStatus, ReplyAction
from mari.infra.cart import CartCollaborator
from mari.infra.payments import PaymentCollaborator
from mari.observability.logging import get_logger
from mari.observability.redaction import safe_log_context

logger = get_logger(__name__)

HANDOFF_MESSAGE = "Entendido. Vou transferir você para um de nossos atendentes."
CART_FAILURE_MESSAGE = (
    "Desculpe, houve um erro ao atualizar seu carrinho. Tente novamente mais tarde."
)
PAYMENT_FAILURE_MESSAGE = "Erro ao processar o pagamento."

DEFAULT_PRODUCT_ID = "123"
DEFAULT_PAYMENT_AMOUNT = Decimal("150.00")


@dataclass(frozen=True)
class DispatchResult:
    intent: Intent
    action: ReplyAction
    response_text: str
    success: bool = True
    cart_status: CartStatus = field(default_factory=CartStatus)


Handler = Callable[[str, ClassifiedIntent], Awaitable[DispatchResult]]


def _parse_total(total: object) -> Decimal | None:
    """Collaborator cart total as a finite Decimal, or None when unreadable."""
    try:
        amount = Decimal(str(total or "0"))
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def _cart_status(total: str | None, items: int | None) -> CartStatus:
    """Normalize a collaborator's cart figures; unreadable totals count as empty."""
    amount = _parse_total(total)
    if amount is None:
        return CartStatus(items=items or 0)
    return CartStatus.from_amount(amount, items or 0)


class ActionDispatcher:
    """Runs the business action for a classified intent."""

    def __init__(
        self,
        cart: CartCollaborator,
        payments: PaymentCollaborator,
        *,
        default_product_id: str = DEFAULT_PRODUCT_ID,
        default_payment_amount: Decimal = DEFAULT_PAYMENT_AMOUNT,
    ) -> None:
        self._cart = cart
        self._payments = payments
        self._default_product_id = default_product_id
        self._default_payment_amount = default_payment_amount
        self._handlers: dict[Intent, Handler] = {
            Intent.ADD_TO_CART: self._add_to_cart,
            Intent.INITIATE_PAYMENT: self._initiate_payment,
            Intent.HANDOFF: self._handoff,
            Intent.GENERAL_QUERY: self._reply,
            Intent.ERROR: self._reply,
        }

    async def dispatch(
        self, conversation_id: str, classified: ClassifiedIntent
    ) -> DispatchResult:
        handler = self._handlers.get(classified.intent, self._reply)
        result = await handler(conversation_id, classified)

        logger.info(
            "intent dispatched",
            extra={
                "extra_fields": safe_log_context(
                    intent=result.intent,
                    action=result.action,
                    success=result.success,
                )
            },
        )
        return result

    async def _add_to_cart(
        self, conversation_id: str, classified: ClassifiedIntent
    ) -> DispatchResult:
        product_id = classified.product_id or self._default_product_id
        quantity = classified.quantity or 1

        try:
            result = await self._cart.update(conversation_id, product_id, quantity)
        except Exception as e:
            logger.error(
                "cart update failed",
                extra={"extra_fields": safe_log_context(error_type=type(e).__name__)},
            )
            return DispatchResult(
                intent=classified.intent,
                action=ReplyAction.REPLY,
                response_text=CART_FAILURE_MESSAGE,
                success=False,
            )

        if not result.success:
            return DispatchResult(
                intent=classified.intent,
                action=ReplyAction.REPLY,
                response_text=result.response_text or CART_FAILURE_MESSAGE,
                success=False,
            )

        return DispatchResult(
            intent=classified.intent,
            action=ReplyAction.REPLY,
            response_text=result.response_text,
            cart_status=_cart_status(result.total, result.items),
        )

    async def _initiate_payment(
        self, conversation_id: str, classified: ClassifiedIntent
    ) -> DispatchResult:
        prior = await self._current_cart(conversation_id)
        cart_status = prior or CartStatus()
        method = classified.payment_method or PAYMENT_METHOD_PIX

        amount = classified.total_amount
        if amount is None and prior is not None and prior.total_amount() > 0:
            amount = prior.total_amount()
        if amount is None:
            amount = self._default_payment_amount

        try:
            result = await self._payments.initiate(conversation_id, amount, method)
        except Exception as e:
            logger.error(
                "payment initiation failed",
                extra={"extra_fields": safe_log_context(error_type=type(e).__name__)},
            )
            return DispatchResult(
                intent=classified.intent,
                action=ReplyAction.REPLY,
                response_text=PAYMENT_FAILURE_MESSAGE,
                success=False,
                cart_status=cart_status,
            )

        response_text = result.response_text or (
            "" if result.success else PAYMENT_FAILURE_MESSAGE
        )
        if result.qr_code_link:
            response_text += f"\nLink do QR Code: {result.qr_code_link}"
        if result.payment_link:
            response_text += f"\nLink de pagamento: {result.payment_link}"

        return DispatchResult(
            intent=classified.intent,
            action=ReplyAction.REPLY,
            response_text=response_text,
            success=result.success,
            cart_status=cart_status,
        )

    async def _handoff(
        self, conversation_id: str, classified: ClassifiedIntent
    ) -> DispatchResult:
        return DispatchResult(
            intent=classified.intent,
            action=ReplyAction.HANDOFF,
            response_text=HANDOFF_MESSAGE,
        )

    async def _reply(
        self, conversation_id: str, classified: ClassifiedIntent
    ) -> DispatchResult:
        return DispatchResult(
            intent=classified.intent,
            action=ReplyAction.REPLY,
            response_text=classified.response_text,
        )

    async def _current_cart(self, conversation_id: str) -> CartStatus | None:
        """Cart snapshot used to price a payment; lookup failures mean no cart."""
        try:
            status = await self._cart.status(conversation_id)
        except Exception as e:
            logger.warning(
                "cart status lookup failed",
                extra={"extra_fields": safe_log_context(error_type=type(e).__name__)},
            )
            return None
        if status is None:
            return None

        if _parse_total(status.total) is None:
            logger.warning(
                "cart status total unreadable",
                extra={"extra_fields": safe_log_context(items=status.items)},
            )
            return None
        return _cart_status(status.total, status.items)
