"""Intent classification via the language model.

Three fallback tiers, in order:
1. Backend unavailable (not configured, or deadline exceeded): simulated
   general_query reply echoing the user turn.
2. Backend answered but the output is malformed: general_query carrying the
   raw text.
3. Backend call raised: intent=error with a fixed apology.
"""

from __future__ import annotations

import asyncio

from mari.domain.intents import (
    ClassifiedIntent,
    Intent,
    MalformedClassificationError,
    parse_classification,
)
from mari.domain.messages import ChatTurn
from mari.infra.context_store import SYSTEM_PROMPT, ConversationContextStore
from mari.llm.client import LanguageModelClient, LanguageModelTimeoutError
from mari.observability.logging import get_logger
from mari.observability.redaction import safe_log_context

logger = get_logger(__name__)

TRANSPORT_ERROR_MESSAGE = "Desculpe, erro ao contactar a IA."
EMPTY_ANSWER_MESSAGE = "Desculpe, sem resposta da IA."

CLASSIFICATION_INSTRUCTIONS = """\
Responda SEMPRE com um único objeto JSON, sem texto fora dele, com as chaves:
- "intent": uma de "add_to_cart", "initiate_payment", "handoff", "general_query";
- "response_text": a mensagem para o cliente, em português;
- "product_id": identificador do produto (apenas para add_to_cart);
- "quantity": quantidade inteira (apenas para add_to_cart);
- "total_amount": valor numérico a pagar, se o cliente informou (apenas para initiate_payment);
- "payment_method": "PIX" ou "CARD" (apenas para initiate_payment).
Use "handoff" quando o cliente pedir para falar com um atendente humano."""


def compose_user_message(text: str, media_text: str | None) -> str:
    """User turn sent to the model, with the media interpretation appended."""
    if media_text is None:
        return text
    return f"{text} (Mídia: {media_text})"


def _split_context(context: list[ChatTurn]) -> tuple[str, list[ChatTurn]]:
    """Split context into (system instruction, history)."""
    if context and context[0].role == "system":
        return context[0].content, context[1:]
    return SYSTEM_PROMPT, list(context)


def _simulated(user_message: str) -> ClassifiedIntent:
    return ClassifiedIntent(
        intent=Intent.GENERAL_QUERY, response_text=f"Simulação: {user_message}"
    )


class IntentClassifier:
    """Classifies a user turn in the context of its conversation."""

    def __init__(
        self,
        context_store: ConversationContextStore,
        llm: LanguageModelClient | None,
        *,
        timeout: float = 15.0,
    ) -> None:
        self._context_store = context_store
        self._llm = llm
        self._timeout = timeout

    async def classify(
        self, conversation_id: str, text: str, media_text: str | None = None
    ) -> ClassifiedIntent:
        context = await self._load_context(conversation_id)
        system_prompt, history = _split_context(context)
        user_message = compose_user_message(text, media_text)

        if self._llm is None:
            logger.warning("language model not configured - returning simulated reply")
            return _simulated(user_message)

        messages = [
            {"role": "system", "content": f"{system_prompt}\n\n{CLASSIFICATION_INSTRUCTIONS}"},
            *(turn.to_message() for turn in history),
            {"role": "user", "content": user_message},
        ]

        try:
            raw = await asyncio.wait_for(
                self._llm.complete(messages, json_mode=True),
                timeout=self._timeout,
            )
        except (asyncio.TimeoutError, LanguageModelTimeoutError):
            logger.warning(
                "language model timed out - returning simulated reply",
                extra={"extra_fields": safe_log_context(timeout_seconds=self._timeout)},
            )
            return _simulated(user_message)
        except Exception as e:
            logger.error(
                "language model call failed",
                extra={"extra_fields": safe_log_context(error_type=type(e).__name__)},
            )
            return ClassifiedIntent(intent=Intent.ERROR, response_text=TRANSPORT_ERROR_MESSAGE)

        try:
            return parse_classification(raw)
        except MalformedClassificationError:
            logger.warning(
                "malformed model output - falling back to raw text",
                extra={"extra_fields": safe_log_context(raw_len=len(raw or ""))},
            )
            return ClassifiedIntent(
                intent=Intent.GENERAL_QUERY,
                response_text=raw or EMPTY_ANSWER_MESSAGE,
            )

    async def _load_context(self, conversation_id: str) -> list[ChatTurn]:
        """Conversation context under the call deadline; failures fall back to the persona alone."""
        try:
            return await asyncio.wait_for(
                self._context_store.get(conversation_id), timeout=self._timeout
            )
        except Exception as e:
            logger.warning(
                "context fetch failed - using default system prompt",
                extra={"extra_fields": safe_log_context(error_type=type(e).__name__)},
            )
            return [ChatTurn(role="system", content=SYSTEM_PROMPT)]
