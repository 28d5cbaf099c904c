"""
Payment method service — saving, listing, replacing, removing and verifying cards.

Adding a card:
  1. The number is normalized (spaces/dashes removed) and Luhn-checked
  2. A second active card with the same last four digits is rejected
  3. The card is sealed into an envelope (CVV discarded, see cardvault.crypto)
  4. The first card a user saves becomes their default automatically

Replacing a card's data never patches the stored envelope. The old row is
deactivated and a new row takes over its nickname and default flag.

Verifying a card opens its envelope: integrity hash first, then the two
GCM-protected fields. If anything fails, the card is treated as tampered:
a CRITICAL security event is logged, a failed audit row is written, and the
card is deactivated so it can never be charged. The IntegrityViolationError
still propagates, and get_db commits the cleanup because it is a
CardVaultError.

Every query is scoped to the owning user; another user's card id behaves
exactly like a nonexistent one (404).
"""

import dataclasses
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cardvault.crypto import (
    CardRecord,
    generate_transaction_id,
    is_card_expired,
    normalize_card_number,
    open_card_record,
    seal_card_record,
    validate_card_number,
)
from cardvault.dependencies import ClientInfo
from cardvault.exceptions import (
    DuplicatePaymentMethodError,
    IntegrityViolationError,
    InvalidCardNumberError,
    PaymentMethodNotFoundError,
)
from cardvault.models.billing_access_log import BillingAction
from cardvault.models.payment_method import PaymentMethod
from cardvault.schemas.payment_method import CardVerificationResponse
from cardvault.security_events import log_card_operation, log_integrity_check_failed
from cardvault.services.audit_service import log_billing_access

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _prepare_record(card: CardRecord) -> CardRecord:
    """Normalize the number and reject it unless it passes length + Luhn."""
    number = normalize_card_number(card.card_number)
    if not validate_card_number(number):
        raise InvalidCardNumberError()
    return dataclasses.replace(card, card_number=number)


async def _ensure_unique_last_four(
    db: AsyncSession,
    user_id: uuid.UUID,
    last_four: str,
    exclude_id: uuid.UUID | None = None,
) -> None:
    query = select(PaymentMethod.id).where(
        PaymentMethod.user_id == user_id,
        PaymentMethod.last_four_digits == last_four,
        PaymentMethod.is_active.is_(True),
    )
    if exclude_id is not None:
        query = query.where(PaymentMethod.id != exclude_id)
    result = await db.execute(query.limit(1))
    if result.scalar_one_or_none() is not None:
        raise DuplicatePaymentMethodError(last_four)


async def _clear_default(db: AsyncSession, user_id: uuid.UUID) -> None:
    await db.execute(
        update(PaymentMethod)
        .where(PaymentMethod.user_id == user_id, PaymentMethod.is_default.is_(True))
        .values(is_default=False)
    )


async def _promote_next_default(db: AsyncSession, user_id: uuid.UUID) -> None:
    """Make the newest remaining active card the default, if there is one."""
    result = await db.execute(
        select(PaymentMethod)
        .where(PaymentMethod.user_id == user_id, PaymentMethod.is_active.is_(True))
        .order_by(PaymentMethod.created_at.desc())
        .limit(1)
    )
    next_card = result.scalar_one_or_none()
    if next_card is not None:
        next_card.is_default = True


async def _deactivate(db: AsyncSession, payment_method: PaymentMethod) -> None:
    was_default = payment_method.is_default
    payment_method.is_active = False
    payment_method.is_default = False
    await db.flush()
    if was_default:
        await _promote_next_default(db, payment_method.user_id)
        await db.flush()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def list_payment_methods(
    db: AsyncSession,
    user_id: uuid.UUID,
) -> list[PaymentMethod]:
    """Active cards of a user: default first, then newest first."""
    result = await db.execute(
        select(PaymentMethod)
        .where(PaymentMethod.user_id == user_id, PaymentMethod.is_active.is_(True))
        .order_by(PaymentMethod.is_default.desc(), PaymentMethod.created_at.desc())
    )
    return list(result.scalars().all())


async def get_default_payment_method(
    db: AsyncSession,
    user_id: uuid.UUID,
) -> PaymentMethod | None:
    """The default card, else the newest active card, else None."""
    cards = await list_payment_methods(db, user_id)
    return cards[0] if cards else None


async def get_payment_method(
    db: AsyncSession,
    payment_method_id: uuid.UUID,
    user_id: uuid.UUID,
) -> PaymentMethod:
    """
    Fetch one active card owned by `user_id`.

    Raises:
        PaymentMethodNotFoundError: If it doesn't exist, was removed, or
            belongs to another user.
    """
    result = await db.execute(
        select(PaymentMethod).where(
            PaymentMethod.id == payment_method_id,
            PaymentMethod.user_id == user_id,
            PaymentMethod.is_active.is_(True),
        )
    )
    payment_method = result.scalar_one_or_none()
    if payment_method is None:
        raise PaymentMethodNotFoundError(payment_method_id)
    return payment_method


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def add_payment_method(
    db: AsyncSession,
    user_id: uuid.UUID,
    card: CardRecord,
    nickname: str | None = None,
    set_as_default: bool = False,
    client: ClientInfo | None = None,
) -> PaymentMethod:
    """
    Seal and store a new card.

    Raises:
        InvalidCardNumberError: If the number fails length or Luhn checks.
        DuplicatePaymentMethodError: If an active card with the same last
            four digits is already saved.
        ConfigurationError: If the encryption key is missing or malformed.
    """
    record = _prepare_record(card)
    await _ensure_unique_last_four(db, user_id, record.card_number[-4:])

    envelope = seal_card_record(record)

    active_count = await db.scalar(
        select(func.count(PaymentMethod.id)).where(
            PaymentMethod.user_id == user_id,
            PaymentMethod.is_active.is_(True),
        )
    )
    make_default = set_as_default or active_count == 0
    if make_default:
        await _clear_default(db, user_id)

    payment_method = PaymentMethod.from_envelope(
        envelope,
        user_id=user_id,
        nickname=nickname,
        is_default=make_default,
    )
    db.add(payment_method)
    await db.flush()

    await log_billing_access(
        db,
        user_id=user_id,
        action=BillingAction.CREATE,
        success=True,
        payment_method_id=payment_method.id,
        details=f"Added card ending in {envelope.last_four_digits}",
        client=client,
    )
    log_card_operation(
        "add",
        user_id=user_id,
        last_four_digits=envelope.last_four_digits,
        ip_address=client.ip_address if client else None,
    )
    return payment_method


async def set_default_payment_method(
    db: AsyncSession,
    payment_method_id: uuid.UUID,
    user_id: uuid.UUID,
    client: ClientInfo | None = None,
) -> PaymentMethod:
    """Make one card the user's only default."""
    payment_method = await get_payment_method(db, payment_method_id, user_id)

    await _clear_default(db, user_id)
    payment_method.is_default = True
    await db.flush()

    await log_billing_access(
        db,
        user_id=user_id,
        action=BillingAction.UPDATE,
        success=True,
        payment_method_id=payment_method.id,
        details=f"Set card ending in {payment_method.last_four_digits} as default",
        client=client,
    )
    return payment_method


async def replace_card(
    db: AsyncSession,
    payment_method_id: uuid.UUID,
    user_id: uuid.UUID,
    card: CardRecord,
    client: ClientInfo | None = None,
) -> PaymentMethod:
    """
    Replace a saved card's data with a freshly sealed envelope.

    The old row is deactivated (kept for the audit trail) and a new row is
    created with the old nickname and default flag.

    Returns:
        The new PaymentMethod. Its id differs from `payment_method_id`.
    """
    old = await get_payment_method(db, payment_method_id, user_id)
    record = _prepare_record(card)
    await _ensure_unique_last_four(
        db, user_id, record.card_number[-4:], exclude_id=old.id
    )

    envelope = seal_card_record(record)

    was_default = old.is_default
    old.is_active = False
    old.is_default = False
    await db.flush()

    replacement = PaymentMethod.from_envelope(
        envelope,
        user_id=user_id,
        nickname=old.nickname,
        is_default=was_default,
    )
    db.add(replacement)
    await db.flush()

    await log_billing_access(
        db,
        user_id=user_id,
        action=BillingAction.UPDATE,
        success=True,
        payment_method_id=replacement.id,
        details=(
            f"Replaced card ending in {old.last_four_digits} "
            f"with card ending in {envelope.last_four_digits}"
        ),
        client=client,
    )
    log_card_operation(
        "replace",
        user_id=user_id,
        last_four_digits=envelope.last_four_digits,
        ip_address=client.ip_address if client else None,
    )
    return replacement


async def delete_payment_method(
    db: AsyncSession,
    payment_method_id: uuid.UUID,
    user_id: uuid.UUID,
    client: ClientInfo | None = None,
) -> None:
    """Soft-delete a card. Removing the default promotes the newest remaining card."""
    payment_method = await get_payment_method(db, payment_method_id, user_id)
    await _deactivate(db, payment_method)

    await log_billing_access(
        db,
        user_id=user_id,
        action=BillingAction.DELETE,
        success=True,
        payment_method_id=payment_method.id,
        details=f"Removed card ending in {payment_method.last_four_digits}",
        client=client,
    )
    log_card_operation(
        "delete",
        user_id=user_id,
        last_four_digits=payment_method.last_four_digits,
        ip_address=client.ip_address if client else None,
    )


async def verify_payment_method(
    db: AsyncSession,
    payment_method_id: uuid.UUID,
    user_id: uuid.UUID,
    client: ClientInfo | None = None,
) -> CardVerificationResponse:
    """
    Open a saved card's envelope and report whether the card is usable.

    Raises:
        PaymentMethodNotFoundError: If the card isn't the user's.
        IntegrityViolationError: If the stored envelope fails verification.
            The card has been deactivated by the time this propagates.
    """
    payment_method = await get_payment_method(db, payment_method_id, user_id)

    try:
        details = open_card_record(payment_method.to_envelope())
    except IntegrityViolationError:
        log_integrity_check_failed(
            user_id=user_id,
            payment_method_id=payment_method.id,
            ip_address=client.ip_address if client else None,
        )
        await log_billing_access(
            db,
            user_id=user_id,
            action=BillingAction.VERIFY,
            success=False,
            payment_method_id=payment_method.id,
            details="Integrity verification failed; card deactivated",
            client=client,
        )
        await _deactivate(db, payment_method)
        raise IntegrityViolationError() from None

    transaction_id = generate_transaction_id()
    await log_billing_access(
        db,
        user_id=user_id,
        action=BillingAction.VERIFY,
        success=True,
        payment_method_id=payment_method.id,
        details=f"{transaction_id} card ending in {payment_method.last_four_digits}",
        client=client,
    )
    logger.info("Verified payment method %s (%s)", payment_method.id, transaction_id)

    return CardVerificationResponse(
        transaction_id=transaction_id,
        payment_method_id=payment_method.id,
        last_four_digits=payment_method.last_four_digits,
        card_brand=payment_method.card_brand,
        luhn_valid=validate_card_number(details.card_number),
        expired=is_card_expired(details.expiry),
        verified_at=datetime.now(timezone.utc),
    )
