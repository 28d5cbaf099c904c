"""
PaymentMethod model — a saved card, stored as a sealed card envelope.

Column layout mirrors cardvault.crypto.CardEnvelope one-to-one:

  - encrypted_card_number / iv_card_number / auth_tag_card_number
  - encrypted_expiry      / iv_expiry      / auth_tag_expiry
  - integrity_hash: SHA-256 over both ciphertexts and last_four_digits
  - cardholder_name, last_four_digits, card_brand: the only plaintext

There is no CVV column. The CVV is used once, at the moment a card is
added, and then discarded.

The envelope columns are never updated in place. Changing a card's data
deactivates this row and inserts a new one (see payment_method_service),
because the integrity hash covers the envelope as a whole.
"""

import uuid
from dataclasses import fields
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cardvault.crypto import CardEnvelope
from cardvault.database import Base


class PaymentMethod(Base):
    __tablename__ = "payment_methods"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # --- Encrypted fields (base64) ---
    encrypted_card_number: Mapped[str] = mapped_column(Text, nullable=False)
    iv_card_number: Mapped[str] = mapped_column(String(32), nullable=False)
    auth_tag_card_number: Mapped[str] = mapped_column(String(32), nullable=False)

    encrypted_expiry: Mapped[str] = mapped_column(Text, nullable=False)
    iv_expiry: Mapped[str] = mapped_column(String(32), nullable=False)
    auth_tag_expiry: Mapped[str] = mapped_column(String(32), nullable=False)

    # Hex SHA-256 binding the encrypted fields and last four together
    integrity_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    # --- Plaintext display fields ---
    cardholder_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    last_four_digits: Mapped[str] = mapped_column(String(4), nullable=False)
    card_brand: Mapped[str] = mapped_column(String(20), nullable=False)

    nickname: Mapped[str | None] = mapped_column(String(100), nullable=True)

    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Soft delete: removed cards stay for the audit trail but are never used
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    user: Mapped["User"] = relationship(back_populates="payment_methods")

    @classmethod
    def from_envelope(cls, envelope: CardEnvelope, **kwargs) -> "PaymentMethod":
        """Build a row from a sealed envelope plus ownership/display kwargs."""
        columns = {f.name: getattr(envelope, f.name) for f in fields(envelope)}
        return cls(**columns, **kwargs)

    def to_envelope(self) -> CardEnvelope:
        """Read the stored envelope back out, all fields together."""
        return CardEnvelope(
            **{f.name: getattr(self, f.name) for f in fields(CardEnvelope)}
        )
