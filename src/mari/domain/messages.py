"""Message records flowing through the gateway.

Inbound records are immutable once received. The reply envelope is the only
shape returned to the caller for a processed message.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Literal

ATTACHMENT_IMAGE = "image"
ATTACHMENT_AUDIO = "audio"

ChatRole = Literal["system", "user", "assistant"]


class ReplyAction(str, Enum):
    REPLY = "reply"
    HANDOFF = "handoff"


@dataclass(frozen=True)
class Attachment:
    """Media attachment reference. `type` is usually "image" or "audio"."""

    type: str
    url: str


@dataclass(frozen=True)
class InboundMessage:
    """Message received from the delivery channel.

    Only the first attachment is ever interpreted.
    """

    conversation_id: str
    content: str | None = None
    attachments: tuple[Attachment, ...] = ()


@dataclass(frozen=True)
class ChatTurn:
    role: ChatRole
    content: str

    def to_message(self) -> dict[str, str]:
        """Render as a chat-completion message."""
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class CartStatus:
    """Cart snapshot carried into the reply. `total` keeps two decimal places."""

    total: str = "0.00"
    items: int = 0

    @classmethod
    def from_amount(cls, total: Decimal, items: int) -> CartStatus:
        return cls(total=f"{total:.2f}", items=items)

    def total_amount(self) -> Decimal:
        return Decimal(self.total)


@dataclass(frozen=True)
class ReplyEnvelope:
    """Final reply for one inbound message.

    `handoff_required` is always derived from `action`; build envelopes
    through `mari.domain.responses.assemble_reply`.
    """

    action: ReplyAction
    response_text: str
    handoff_required: bool
    cart_status: CartStatus = field(default_factory=CartStatus)

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "response_text": self.response_text,
            "handoff_required": self.handoff_required,
            "cart_status": {
                "total": self.cart_status.total,
                "items": self.cart_status.items,
            },
        }
