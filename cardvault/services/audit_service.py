"""Billing access audit trail."""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from cardvault.dependencies import ClientInfo
from cardvault.models.billing_access_log import BillingAccessLog, BillingAction

logger = logging.getLogger(__name__)


async def log_billing_access(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    action: BillingAction,
    success: bool,
    payment_method_id: uuid.UUID | None = None,
    details: str | None = None,
    client: ClientInfo | None = None,
) -> BillingAccessLog:
    """Write an immutable audit entry. `details` must not contain card data."""
    entry = BillingAccessLog(
        user_id=user_id,
        action=action,
        success=success,
        payment_method_id=payment_method_id,
        details=details,
        ip_address=client.ip_address if client else None,
        user_agent=client.user_agent if client else None,
    )
    db.add(entry)
    await db.flush()
    logger.info(
        "AUDIT: %s %s payment_method=%s success=%s",
        user_id, action.value, payment_method_id, success,
    )
    return entry
