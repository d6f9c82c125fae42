"""Cart collaborator.

The e-commerce platform integration is out of scope; InMemoryCart keeps
per-conversation line items so totals behave like a real cart.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from mari.domain.messages import CartStatus
from mari.observability.logging import get_logger
from mari.observability.redaction import safe_log_context

logger = get_logger(__name__)

DEFAULT_UNIT_PRICE = Decimal("50.00")


@dataclass(frozen=True)
class CartResult:
    success: bool
    response_text: str
    total: str | None = None
    items: int | None = None


class CartCollaborator(Protocol):
    async def update(
        self, conversation_id: str, product_id: str, quantity: int
    ) -> CartResult:
        ...

    async def status(self, conversation_id: str) -> CartStatus | None:
        ...


class InMemoryCart:
    """Cart kept in process memory, priced from a small catalog."""

    def __init__(
        self,
        catalog: Mapping[str, Decimal] | None = None,
        default_unit_price: Decimal = DEFAULT_UNIT_PRICE,
    ) -> None:
        self._catalog = dict(catalog or {})
        self._default_unit_price = default_unit_price
        # conversation_id -> product_id -> quantity
        self._lines: dict[str, dict[str, int]] = {}

    async def update(
        self, conversation_id: str, product_id: str, quantity: int
    ) -> CartResult:
        if quantity <= 0:
            raise ValueError("quantity must be positive")

        lines = self._lines.setdefault(conversation_id, {})
        lines[product_id] = lines.get(product_id, 0) + quantity
        status = self._status(lines)

        logger.info(
            "cart updated",
            extra={
                "extra_fields": safe_log_context(
                    product_id=product_id,
                    quantity=quantity,
                    items=status.items,
                )
            },
        )

        return CartResult(
            success=True,
            total=status.total,
            items=status.items,
            response_text=(
                f"Produto adicionado ao seu carrinho. O total atual é R$ {status.total}."
            ),
        )

    async def status(self, conversation_id: str) -> CartStatus | None:
        lines = self._lines.get(conversation_id)
        if not lines:
            return None
        return self._status(lines)

    def _status(self, lines: Mapping[str, int]) -> CartStatus:
        total = sum(
            (self._catalog.get(pid, self._default_unit_price) * qty for pid, qty in lines.items()),
            Decimal("0"),
        )
        return CartStatus.from_amount(total, sum(lines.values()))
