"""
Payment methods router — the saved-card wallet of the authenticated user.

Endpoints:
  POST   /payment-methods                 — Save a card
  GET    /payment-methods                 — List saved cards (masked)
  GET    /payment-methods/default         — The default card, or null
  GET    /payment-methods/{id}            — One saved card (masked)
  PUT    /payment-methods/{id}/default    — Make a card the default
  PUT    /payment-methods/{id}/card       — Replace a card's data
  DELETE /payment-methods/{id}            — Remove a card
  POST   /payment-methods/{id}/verify     — Open the stored envelope

Full card numbers, expiries and CVVs go in, never out.
"""

import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from cardvault.crypto import CardRecord
from cardvault.database import get_db
from cardvault.dependencies import ClientInfo, get_client_info, get_current_user
from cardvault.models.user import User
from cardvault.schemas.payment_method import (
    AddPaymentMethodRequest,
    CardDataRequest,
    CardVerificationResponse,
    DefaultPaymentMethodResponse,
    PaymentMethodListResponse,
    PaymentMethodResponse,
    ReplaceCardRequest,
)
from cardvault.services import payment_method_service

router = APIRouter()


def _to_record(card: CardDataRequest) -> CardRecord:
    return CardRecord(
        card_number=card.card_number,
        cvv=card.cvv,
        expiry=card.expiry,
        cardholder_name=card.cardholder_name,
    )


@router.post(
    "",
    response_model=PaymentMethodResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a card",
)
async def add_payment_method(
    request: AddPaymentMethodRequest,
    user: User = Depends(get_current_user),
    client: ClientInfo = Depends(get_client_info),
    db: AsyncSession = Depends(get_db),
):
    """
    Save a card for later use.

    - The number must pass the Luhn check (422 otherwise)
    - Only one active card per last-four digits (409 otherwise)
    - The first saved card becomes the default
    - The CVV is used for this request only and is never stored
    """
    return await payment_method_service.add_payment_method(
        db=db,
        user_id=user.id,
        card=_to_record(request.card),
        nickname=request.nickname,
        set_as_default=request.set_as_default,
        client=client,
    )


@router.get(
    "",
    response_model=PaymentMethodListResponse,
    summary="List saved cards",
)
async def list_payment_methods(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    cards = await payment_method_service.list_payment_methods(db, user.id)
    return PaymentMethodListResponse(
        payment_methods=[PaymentMethodResponse.model_validate(c) for c in cards]
    )


# Declared before /{payment_method_id} so "default" is not parsed as an id
@router.get(
    "/default",
    response_model=DefaultPaymentMethodResponse,
    summary="Get the default card",
)
async def get_default_payment_method(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    card = await payment_method_service.get_default_payment_method(db, user.id)
    return DefaultPaymentMethodResponse(
        payment_method=PaymentMethodResponse.model_validate(card) if card else None
    )


@router.get(
    "/{payment_method_id}",
    response_model=PaymentMethodResponse,
    summary="Get a saved card",
)
async def get_payment_method(
    payment_method_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await payment_method_service.get_payment_method(
        db, payment_method_id, user.id
    )


@router.put(
    "/{payment_method_id}/default",
    response_model=PaymentMethodResponse,
    summary="Make a card the default",
)
async def set_default_payment_method(
    payment_method_id: uuid.UUID,
    user: User = Depends(get_current_user),
    client: ClientInfo = Depends(get_client_info),
    db: AsyncSession = Depends(get_db),
):
    return await payment_method_service.set_default_payment_method(
        db, payment_method_id, user.id, client=client
    )


@router.put(
    "/{payment_method_id}/card",
    response_model=PaymentMethodResponse,
    summary="Replace a card's data",
)
async def replace_card(
    payment_method_id: uuid.UUID,
    request: ReplaceCardRequest,
    user: User = Depends(get_current_user),
    client: ClientInfo = Depends(get_client_info),
    db: AsyncSession = Depends(get_db),
):
    """
    Replace the card behind a saved payment method.

    The stored envelope is never edited in place: the old entry is retired
    and a new one is returned, with a new id, keeping the nickname and
    default flag.
    """
    return await payment_method_service.replace_card(
        db, payment_method_id, user.id, _to_record(request.card), client=client
    )


@router.delete(
    "/{payment_method_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a card",
)
async def delete_payment_method(
    payment_method_id: uuid.UUID,
    user: User = Depends(get_current_user),
    client: ClientInfo = Depends(get_client_info),
    db: AsyncSession = Depends(get_db),
):
    await payment_method_service.delete_payment_method(
        db, payment_method_id, user.id, client=client
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{payment_method_id}/verify",
    response_model=CardVerificationResponse,
    summary="Verify a saved card",
)
async def verify_payment_method(
    payment_method_id: uuid.UUID,
    user: User = Depends(get_current_user),
    client: ClientInfo = Depends(get_client_info),
    db: AsyncSession = Depends(get_db),
):
    """
    Decrypt the saved card server-side and report whether it is usable.

    If the stored data fails its integrity checks the card is removed and
    the response is 400 with error_type "integrity_violation"; the card
    must then be added again.
    """
    return await payment_method_service.verify_payment_method(
        db, payment_method_id, user.id, client=client
    )
