"""
Pydantic schemas for payment method endpoints.

Requests carry full card data (number, CVV, expiry) exactly once, when a
card is added or replaced. Responses never do: they expose the masked view
(brand, last four, cardholder name) and nothing from the encrypted
envelope, not even ciphertext, IVs, tags or the integrity hash.

Card-number validity (Luhn) is checked in the service layer rather than
here, so that a bad number gets the dedicated "invalid_card_number" error
instead of a generic 422 validation body.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from cardvault.crypto import normalize_card_number, parse_expiry


class CardDataRequest(BaseModel):
    """Plaintext card data. Lives only for the duration of the request."""
    card_number: str = Field(min_length=12, max_length=23)
    cvv: str = Field(pattern=r"^\d{3,4}$")
    expiry: str = Field(description="MM/YY or MM/YYYY")
    cardholder_name: str = Field(default="", max_length=255)

    @field_validator("card_number")
    @classmethod
    def strip_separators(cls, value: str) -> str:
        return normalize_card_number(value)

    @field_validator("expiry")
    @classmethod
    def check_expiry_format(cls, value: str) -> str:
        parse_expiry(value)  # raises ValueError -> 422
        return value.strip()

    def __repr__(self) -> str:
        return f"CardDataRequest(cardholder_name={self.cardholder_name!r})"


class AddPaymentMethodRequest(BaseModel):
    """Request body for POST /payment-methods."""
    card: CardDataRequest
    nickname: str | None = Field(default=None, max_length=100)
    set_as_default: bool = False


class ReplaceCardRequest(BaseModel):
    """Request body for PUT /payment-methods/{id}/card."""
    card: CardDataRequest


class PaymentMethodResponse(BaseModel):
    """Masked representation of a saved card."""
    id: uuid.UUID
    last_four_digits: str
    card_brand: str
    cardholder_name: str
    nickname: str | None
    is_default: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PaymentMethodListResponse(BaseModel):
    payment_methods: list[PaymentMethodResponse]


class DefaultPaymentMethodResponse(BaseModel):
    """`payment_method` is null when the user has no saved card (not an error)."""
    payment_method: PaymentMethodResponse | None


class CardVerificationResponse(BaseModel):
    """
    Result of opening a saved card's envelope.

    `luhn_valid` and `expired` describe the decrypted card; neither the
    number nor the expiry itself is returned.
    """
    transaction_id: str
    payment_method_id: uuid.UUID
    last_four_digits: str
    card_brand: str
    luhn_valid: bool
    expired: bool
    verified_at: datetime
