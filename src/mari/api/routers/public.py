"""Operational routes: health and logs."""

import resource
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from mari.infra.settings import Settings
from mari.observability.logging import SERVICE_NAME

router = APIRouter()

_READY = ("UP", "CONFIGURED")


def _format_uptime(seconds: float) -> str:
    """Render uptime as "<days> days, HH:MM:SS"."""
    days, rem = divmod(int(seconds), 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)
    return f"{days} days, {hours:02d}:{minutes:02d}:{secs:02d}"


def _memory_usage_mb() -> str:
    """Peak resident set size of the process, in MB (ru_maxrss is KB on Linux)."""
    return f"{resource.getrusage(resource.RUSAGE_SELF).ru_maxrss / 1024:.2f}"


def _integrations(settings: Settings, llm_available: bool) -> dict[str, dict[str, str]]:
    return {
        "openai": {"status": "UP" if llm_available else "UNCONFIGURED"},
        "woocommerce": {
            "status": "CONFIGURED" if settings.woo_store_url else "UNCONFIGURED"
        },
        "payment_gateway": {
            "status": "CONFIGURED" if settings.payment_api_key else "UNCONFIGURED"
        },
    }


@router.get("/health")
def health(request: Request) -> JSONResponse:
    """Health check with integration status. 503 while any integration is unconfigured."""
    state = request.app.state
    settings: Settings = state.settings

    integrations = _integrations(settings, state.llm_available)
    overall = (
        "UP"
        if all(item["status"] in _READY for item in integrations.values())
        else "DEGRADED"
    )

    return JSONResponse(
        status_code=200 if overall == "UP" else 503,
        content={
            "status": overall,
            "service": SERVICE_NAME,
            "version": settings.service_version,
            "environment": settings.environment,
            "uptime": _format_uptime(time.monotonic() - state.started_at),
            "memory_usage_mb": _memory_usage_mb(),
            "integrations": integrations,
        },
    )


@router.get("/logs")
def logs() -> JSONResponse:
    """Log reading is not served by the API."""
    return JSONResponse(
        status_code=501,
        content={
            "message": (
                "Endpoint de logs não implementado para leitura direta em produção. "
                "Use ferramentas de observabilidade."
            )
        },
    )
