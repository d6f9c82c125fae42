"""Message processing API.

Every route under /api goes through the compliance gate first.
Security: message content and attachment URLs are NEVER logged.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from mari.api.compliance import enforce_compliance
from mari.domain.messages import Attachment, InboundMessage
from mari.domain.pipeline import MessagePipeline
from mari.domain.responses import internal_error_reply
from mari.observability.correlation import get_correlation_id
from mari.observability.logging import get_logger
from mari.observability.redaction import safe_log_context

router = APIRouter(
    prefix="/api",
    tags=["messages"],
    dependencies=[Depends(enforce_compliance)],
)

logger = get_logger(__name__)


class AttachmentIn(BaseModel):
    type: str
    url: str


class ProcessMessageRequest(BaseModel):
    """Inbound message as delivered by the channel orchestrator."""

    conversation_id: str
    content: str | None = None
    attachments: list[AttachmentIn] | None = Field(default=None)

    @field_validator("conversation_id", mode="before")
    @classmethod
    def _coerce_conversation_id(cls, value: object) -> object:
        # Channels may send numeric ids
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    def to_inbound(self) -> InboundMessage:
        return InboundMessage(
            conversation_id=self.conversation_id,
            content=self.content,
            attachments=tuple(
                Attachment(type=a.type, url=a.url) for a in self.attachments or []
            ),
        )


def _get_pipeline(request: Request) -> MessagePipeline:
    """Pipeline built by the app factory (replaceable in tests)."""
    return request.app.state.pipeline


@router.post("/process-message")
async def process_message(
    req: ProcessMessageRequest,
    pipeline: MessagePipeline = Depends(_get_pipeline),
) -> JSONResponse:
    """Process one inbound message and return the reply envelope.

    Returns:
        200 with the reply envelope.
        400 compliance_error (raised by the router dependency).
        500 with a generic apology envelope if processing failed.
    """
    correlation_id = get_correlation_id()

    logger.info(
        "process-message received",
        extra={
            "extra_fields": safe_log_context(
                correlationId=correlation_id,
                has_content=bool(req.content),
                attachment_count=len(req.attachments or []),
            )
        },
    )

    try:
        envelope = await pipeline.process(req.to_inbound())
    except Exception:
        logger.exception(
            "message processing failed",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return JSONResponse(status_code=500, content=internal_error_reply().to_dict())

    return JSONResponse(content=envelope.to_dict())
