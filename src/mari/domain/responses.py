"""Reply envelope assembly."""

from mari.domain.dispatch import DispatchResult
from mari.domain.messages import CartStatus, ReplyAction, ReplyEnvelope

INTERNAL_ERROR_MESSAGE = "Desculpe, houve um erro interno."


def acknowledgement(content: str | None) -> str:
    """Generic acknowledgement used when no stage produced a reply."""
    if content:
        return f'Olá! Recebi sua mensagem: "{content}".'
    return "Olá! Recebi sua mensagem."


def assemble_reply(result: DispatchResult, content: str | None) -> ReplyEnvelope:
    """Build the envelope for a dispatched message.

    handoff_required is derived from the action, and an empty response_text
    is replaced by the acknowledgement.
    """
    response_text = result.response_text
    if not response_text or not response_text.strip():
        response_text = acknowledgement(content)

    return ReplyEnvelope(
        action=result.action,
        response_text=response_text,
        handoff_required=result.action is ReplyAction.HANDOFF,
        cart_status=result.cart_status,
    )


def internal_error_reply() -> ReplyEnvelope:
    """Envelope returned when the pipeline failed unexpectedly."""
    return ReplyEnvelope(
        action=ReplyAction.REPLY,
        response_text=INTERNAL_ERROR_MESSAGE,
        handoff_required=False,
        cart_status=CartStatus(),
    )
