"""Compliance enforcement for /api routes.

Security:
- Blocked requests log only a truncated, masked snippet of the body
- Accepted requests log the masked audit copy; handlers still receive the
  original body
"""

import json

from fastapi import Request
from fastapi.responses import JSONResponse

from mari.domain.compliance import ComplianceViolation, check_compliance
from mari.observability.logging import get_logger
from mari.observability.redaction import safe_log_context

logger = get_logger(__name__)


def _serialize_body(raw: bytes) -> str:
    """Canonical text of the body; JSON is re-dumped so escapes cannot hide digits."""
    text = raw.decode("utf-8", errors="replace")
    try:
        return json.dumps(json.loads(text), ensure_ascii=False)
    except ValueError:
        return text


async def enforce_compliance(request: Request) -> None:
    """Router dependency: reject bodies carrying CPF or card numbers.

    Raises:
        ComplianceViolation: Rendered as 400 by compliance_violation_handler.
    """
    body = _serialize_body(await request.body())

    try:
        sanitized = check_compliance(body)
    except ComplianceViolation as violation:
        logger.warning(
            "sensitive data detected, request blocked",
            extra={
                "extra_fields": safe_log_context(
                    path=request.url.path,
                    body_snippet=violation.snippet,
                )
            },
        )
        raise

    logger.info(
        "request passed compliance check",
        extra={"extra_fields": safe_log_context(path=request.url.path, body=sanitized)},
    )


async def compliance_violation_handler(
    request: Request, exc: ComplianceViolation
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"status": "compliance_error", "message": exc.message},
    )
