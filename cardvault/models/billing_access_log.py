"""
BillingAccessLog model — append-only record of access to saved cards.

One row per create, read-of-secret (verify), update, or delete of a payment
method, successful or not. Rows reference the card by id and describe it by
last four digits only; they never hold card data.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from cardvault.database import Base


class BillingAction(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    VERIFY = "verify"


class BillingAccessLog(Base):
    __tablename__ = "billing_access_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # No FK: log rows must outlive whatever happens to the card row
    payment_method_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)

    action: Mapped[BillingAction] = mapped_column(Enum(BillingAction), nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    details: Mapped[str | None] = mapped_column(String(255), nullable=True)

    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
