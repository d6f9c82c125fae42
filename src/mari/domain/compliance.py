"""Compliance gate for inbound payloads.

Requests carrying a CPF or a payment card number are rejected before any
processing. Clean requests go through unchanged; only the audit copy that is
logged gets masked.
"""

from mari.observability.redaction import CARD_PATTERN, CPF_PATTERN

MASK_TOKEN = "[DADO_SENSIVEL_MASCARADO]"

SNIPPET_LENGTH = 200

COMPLIANCE_MESSAGE = (
    "Olá! Detectamos que você pode ter incluído informações sensíveis "
    "(como CPF ou número de cartão). Por segurança e conformidade, bloqueamos "
    "o processamento. Remova esses dados e tente novamente."
)


class ComplianceViolation(Exception):
    """Payload contains sensitive personal or financial data."""

    def __init__(self, snippet: str) -> None:
        super().__init__("sensitive data detected in payload")
        self.snippet = snippet
        self.message = COMPLIANCE_MESSAGE


def contains_sensitive_data(body: str) -> bool:
    """Check body for CPF or payment card patterns."""
    return bool(CPF_PATTERN.search(body) or CARD_PATTERN.search(body))


def mask_sensitive_data(body: str) -> str:
    """Replace every CPF/card match with MASK_TOKEN."""
    masked = CARD_PATTERN.sub(MASK_TOKEN, body)
    return CPF_PATTERN.sub(MASK_TOKEN, masked)


def check_compliance(body: str) -> str:
    """Gate a serialized request body.

    Args:
        body: Serialized request body.

    Returns:
        Sanitized copy of the body, for audit logging only.

    Raises:
        ComplianceViolation: If a sensitive pattern is present. The exception
            carries a truncated, masked snippet safe to log.
    """
    if contains_sensitive_data(body):
        raise ComplianceViolation(mask_sensitive_data(body)[:SNIPPET_LENGTH])
    return mask_sensitive_data(body)
