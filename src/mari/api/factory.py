"""FastAPI application factory."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from mari.api.compliance import compliance_violation_handler
from mari.api.rate_limit import RATE_LIMIT_MESSAGE, FixedWindowRateLimiter
from mari.domain.classifier import IntentClassifier
from mari.domain.compliance import ComplianceViolation
from mari.domain.dispatch import ActionDispatcher
from mari.domain.media import MediaInterpreter
from mari.domain.pipeline import MessagePipeline
from mari.infra.cart import CartCollaborator, InMemoryCart
from mari.infra.context_store import ConversationContextStore, InMemoryContextStore
from mari.infra.media_download import MediaDownloader
from mari.infra.payments import PaymentCollaborator, SimulatedPaymentGateway
from mari.infra.settings import Settings, load_settings
from mari.llm.client import LanguageModelClient, build_llm_client
from mari.observability.correlation import CORRELATION_ID_HEADER, correlation_scope
from mari.observability.logging import get_logger
from mari.observability.redaction import safe_log_context

from .routers import public
from .routes import process_message

logger = get_logger(__name__)


def build_pipeline(
    settings: Settings,
    llm: LanguageModelClient | None,
    *,
    context_store: ConversationContextStore | None = None,
    cart: CartCollaborator | None = None,
    payments: PaymentCollaborator | None = None,
) -> MessagePipeline:
    """Wire the message pipeline. Missing collaborators get the in-memory stand-ins."""
    timeout = settings.llm_timeout_seconds
    downloader = MediaDownloader(timeout=timeout, max_bytes=settings.media_max_bytes)

    return MessagePipeline(
        media=MediaInterpreter(llm, downloader, timeout=timeout),
        classifier=IntentClassifier(
            context_store or InMemoryContextStore(), llm, timeout=timeout
        ),
        dispatcher=ActionDispatcher(
            cart or InMemoryCart(),
            payments or SimulatedPaymentGateway(),
            default_product_id=settings.default_product_id,
            default_payment_amount=settings.default_payment_amount,
        ),
    )


def create_app(
    settings: Settings | None = None,
    *,
    pipeline: MessagePipeline | None = None,
) -> FastAPI:
    """Create the FastAPI app.

    Args:
        settings: Explicit settings. If None, read from the environment.
        pipeline: Pre-built pipeline (tests). If None, one is built from
            settings with the in-memory collaborators.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = load_settings()

    if pipeline is None:
        llm = build_llm_client(settings)
        llm_available = llm is not None
        pipeline = build_pipeline(settings, llm)
    else:
        llm_available = settings.llm_configured

    app = FastAPI(
        title="Mari Agent",
        version=settings.service_version,
        docs_url=None,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.llm_available = llm_available
    app.state.started_at = time.monotonic()

    limiter = FixedWindowRateLimiter(
        settings.rate_limit_max_requests, settings.rate_limit_window_seconds
    )

    # Registered first so it runs inside the correlation scope
    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next) -> Response:
        client_key = request.client.host if request.client else "unknown"
        decision = limiter.hit(client_key)
        if not decision.allowed:
            logger.warning(
                "rate limit exceeded",
                extra={"extra_fields": safe_log_context(endpoint=request.url.path)},
            )
            return JSONResponse(
                status_code=429,
                content={"status": "error", "message": RATE_LIMIT_MESSAGE},
                headers={"Retry-After": str(decision.retry_after)},
            )
        return await call_next(request)

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        with correlation_scope(request.headers.get(CORRELATION_ID_HEADER)) as cid:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response

    app.add_exception_handler(ComplianceViolation, compliance_violation_handler)

    app.include_router(public.router)
    app.include_router(process_message.router)

    logger.info(
        "mari agent app created",
        extra={
            "extra_fields": safe_log_context(
                environment=settings.environment,
                version=settings.service_version,
                llm_available=llm_available,
            )
        },
    )

    return app
