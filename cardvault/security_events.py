"""
Security event logging.

Events that a security team may want to alert on (tampered card data,
card lifecycle operations) are written to the dedicated
"cardvault.security" logger, so they can be routed to a SIEM separately
from ordinary application logs.

Rules for callers:
  - Never pass card numbers, expiries, CVVs, ciphertexts, IVs, tags or keys
    in `details`. Last four digits and ids are fine.
  - Integrity failures are logged with the same generic description no
    matter which check failed.
"""

import enum
import logging
import uuid
from typing import Any

security_logger = logging.getLogger("cardvault.security")


class SecurityEventType(str, enum.Enum):
    """Kinds of events written to the security log."""
    INTEGRITY_CHECK_FAILED = "INTEGRITY_CHECK_FAILED"
    CARD_OPERATION = "CARD_OPERATION"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class Severity(str, enum.Enum):
    """How urgently an event needs attention; maps onto a log level."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


_LEVELS = {
    Severity.LOW: logging.INFO,
    Severity.MEDIUM: logging.INFO,
    Severity.HIGH: logging.WARNING,
    Severity.CRITICAL: logging.ERROR,
}


def log_security_event(
    event_type: SecurityEventType,
    *,
    severity: Severity,
    user_id: uuid.UUID | None = None,
    ip_address: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Emit one structured security event."""
    security_logger.log(
        _LEVELS[severity],
        "[SECURITY] %s severity=%s user=%s ip=%s details=%s",
        event_type.value,
        severity.value,
        user_id,
        ip_address or "unknown",
        details or {},
        extra={
            "event_type": event_type.value,
            "severity": severity.value,
        },
    )


def log_integrity_check_failed(
    *,
    user_id: uuid.UUID,
    payment_method_id: uuid.UUID,
    ip_address: str | None = None,
) -> None:
    """A stored card envelope failed verification: tampering or corruption."""
    log_security_event(
        SecurityEventType.INTEGRITY_CHECK_FAILED,
        severity=Severity.CRITICAL,
        user_id=user_id,
        ip_address=ip_address,
        details={"payment_method_id": str(payment_method_id)},
    )


def log_card_operation(
    operation: str,
    *,
    user_id: uuid.UUID,
    last_four_digits: str,
    ip_address: str | None = None,
) -> None:
    """A card was added, replaced or removed. Only the last four digits are logged."""
    log_security_event(
        SecurityEventType.CARD_OPERATION,
        severity=Severity.LOW,
        user_id=user_id,
        ip_address=ip_address,
        details={"operation": operation, "last_four": last_four_digits},
    )
