"""
Error taxonomy shared by the FABOT endpoints.

Gateway failures are classified by the status code the completion provider
answered with. Each class carries the user-facing message and the HTTP
status the Chat Proxy returns for it.
"""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class FabotError(Exception):
    """Base exception for FABOT"""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, **self.details}


class GatewayError(FabotError):
    """Unclassified completion gateway failure"""


class GatewayAuthError(GatewayError):
    status_code = 401


class GatewayBillingError(GatewayError):
    status_code = 402


class GatewayRateLimitError(GatewayError):
    status_code = 429


def classify_gateway_error(exc: Exception) -> GatewayError:
    """
    Convert an exception raised by the completion SDK into the FABOT taxonomy.

    The SDK's status errors expose `status_code`, `message`, `code` and `body`;
    connection errors carry none of these and fall through to the generic class.
    """
    if isinstance(exc, GatewayError):
        return exc

    status = getattr(exc, "status_code", None)
    detail = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
    code = getattr(exc, "code", None)

    logger.error(
        "Completion gateway error: type=%s status=%s code=%s message=%s",
        exc.__class__.__name__, status, code, detail,
    )

    if status == 401:
        return GatewayAuthError("Completion API key is invalid or not configured")

    if status == 402:
        return GatewayBillingError("Billing problem with the completion provider")

    if status == 429:
        return GatewayRateLimitError(
            f"Rate limit exceeded. Details: {detail or 'Request limit reached'}",
            details={"details": getattr(exc, "body", None)},
        )

    return GatewayError(
        f"Completion error: {detail or 'Unknown error'}",
        details={"status": status, "code": code},
    )
