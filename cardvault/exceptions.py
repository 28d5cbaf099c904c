"""
Custom exception classes and FastAPI exception handlers.

The crypto core and the service layer raise domain errors without importing
HTTP concepts. The handlers registered here translate them into consistent
JSON responses: {"detail": "...", "error_type": "..."}.

Exception hierarchy:
    CardVaultError (base)
    ├── ConfigurationError           — encryption key missing or malformed
    ├── IntegrityViolationError      — GCM tag or integrity hash mismatch
    ├── MalformedInputError          — bad base64/hex, wrong IV or tag length
    ├── InvalidCardNumberError       — card number fails the Luhn check
    ├── PaymentMethodNotFoundError   — no such card for this user
    ├── DuplicatePaymentMethodError  — active card with same last four exists
    ├── DuplicateEmailError          — signup with a registered email
    └── InvalidCredentialsError      — wrong email or password

Integrity and configuration errors carry deliberately generic messages.
Callers learn that the data cannot be trusted, never whether the key was
wrong, the tag was altered or the ciphertext was truncated.
"""

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class CardVaultError(Exception):
    """Base exception for all Card Vault domain errors."""

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Crypto core exceptions
# ---------------------------------------------------------------------------

class ConfigurationError(CardVaultError):
    """
    Raised when the encryption key is absent or not 64 hex characters.

    This is fatal. There is no default key to fall back to.
    """


class IntegrityViolationError(CardVaultError):
    """
    Raised when protected data fails authentication.

    Covers a GCM authentication tag that does not verify (tampered
    ciphertext, IV or tag, or the wrong key) and an integrity hash that does
    not match its card envelope.
    """

    def __init__(self, detail: str = "Data integrity verification failed"):
        super().__init__(detail)


class MalformedInputError(CardVaultError):
    """Raised when encoded crypto input cannot even be parsed (a caller bug)."""


# ---------------------------------------------------------------------------
# Payment method exceptions
# ---------------------------------------------------------------------------

class InvalidCardNumberError(CardVaultError):
    """Raised when a submitted card number fails length or Luhn validation."""

    def __init__(self):
        super().__init__("Invalid card number")


class PaymentMethodNotFoundError(CardVaultError):
    """Raised when a payment method does not exist or belongs to someone else."""

    def __init__(self, payment_method_id: uuid.UUID):
        self.payment_method_id = payment_method_id
        super().__init__(f"Payment method {payment_method_id} not found")


class DuplicatePaymentMethodError(CardVaultError):
    """Raised when the user already has an active card ending in the same digits."""

    def __init__(self, last_four_digits: str):
        self.last_four_digits = last_four_digits
        super().__init__(
            f"A card ending in {last_four_digits} is already saved"
        )


# ---------------------------------------------------------------------------
# Auth exceptions
# ---------------------------------------------------------------------------

class DuplicateEmailError(CardVaultError):
    """Raised when attempting to register with an email that's already in use."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


class InvalidCredentialsError(CardVaultError):
    """Raised when login credentials are incorrect."""

    def __init__(self):
        super().__init__("Invalid email or password")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def _error(status_code: int, detail: str, error_type: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "error_type": error_type},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Called once during app construction in main.py.
    """

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        # The real reason goes to the server log only
        logger.error("Configuration error on %s: %s", request.url.path, exc.detail)
        return _error(500, "Service is not configured correctly", "configuration_error")

    @app.exception_handler(IntegrityViolationError)
    async def integrity_violation_handler(
        request: Request, exc: IntegrityViolationError
    ) -> JSONResponse:
        return _error(
            400,
            "Card data integrity check failed. Please add your payment method again.",
            "integrity_violation",
        )

    @app.exception_handler(MalformedInputError)
    async def malformed_input_handler(
        request: Request, exc: MalformedInputError
    ) -> JSONResponse:
        return _error(400, exc.detail, "malformed_input")

    @app.exception_handler(InvalidCardNumberError)
    async def invalid_card_number_handler(
        request: Request, exc: InvalidCardNumberError
    ) -> JSONResponse:
        return _error(422, exc.detail, "invalid_card_number")

    @app.exception_handler(PaymentMethodNotFoundError)
    async def payment_method_not_found_handler(
        request: Request, exc: PaymentMethodNotFoundError
    ) -> JSONResponse:
        return _error(404, exc.detail, "payment_method_not_found")

    @app.exception_handler(DuplicatePaymentMethodError)
    async def duplicate_payment_method_handler(
        request: Request, exc: DuplicatePaymentMethodError
    ) -> JSONResponse:
        return _error(409, exc.detail, "duplicate_payment_method")

    @app.exception_handler(DuplicateEmailError)
    async def duplicate_email_handler(
        request: Request, exc: DuplicateEmailError
    ) -> JSONResponse:
        return _error(409, exc.detail, "duplicate_email")

    @app.exception_handler(InvalidCredentialsError)
    async def invalid_credentials_handler(
        request: Request, exc: InvalidCredentialsError
    ) -> JSONResponse:
        return _error(401, exc.detail, "invalid_credentials")
