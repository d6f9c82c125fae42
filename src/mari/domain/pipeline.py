"""Message-processing pipeline.

media interpretation -> intent classification -> dispatch -> assembly.
Compliance gating happens before this, on the raw request body.

Security: message content and media text are NEVER logged.
"""

from __future__ import annotations

from mari.domain.classifier import IntentClassifier
from mari.domain.dispatch import ActionDispatcher
from mari.domain.media import MediaInterpreter
from mari.domain.messages import InboundMessage, ReplyEnvelope
from mari.domain.responses import assemble_reply
from mari.observability.logging import get_logger
from mari.observability.redaction import safe_log_context

logger = get_logger(__name__)


class MessagePipeline:
    """Processes one inbound message into one reply envelope.

    Holds no per-request state; collaborators are injected.
    """

    def __init__(
        self,
        media: MediaInterpreter,
        classifier: IntentClassifier,
        dispatcher: ActionDispatcher,
    ) -> None:
        self.media = media
        self.classifier = classifier
        self.dispatcher = dispatcher

    async def process(self, message: InboundMessage) -> ReplyEnvelope:
        media = await self.media.interpret(message.attachments)
        text = message.content or media.text or ""

        classified = await self.classifier.classify(
            message.conversation_id, text, media.text
        )
        result = await self.dispatcher.dispatch(message.conversation_id, classified)
        envelope = assemble_reply(result, message.content)

        logger.info(
            "message processed",
            extra={
                "extra_fields": safe_log_context(
                    intent=classified.intent,
                    action=envelope.action,
                    handoff_required=envelope.handoff_required,
                    cart_items=envelope.cart_status.items,
                    has_media=media.text is not None,
                )
            },
        )
        return envelope
