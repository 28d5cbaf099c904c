"""
Card Envelope Codec — seals card records for storage and opens them again.

Sealing a card record:
  1. card_number and expiry are each encrypted under their own fresh IV
  2. last_four_digits and card_brand are derived from the raw number
  3. integrity_hash = SHA-256("<enc card number>|<enc expiry>|<last four>")
  4. the CVV is dropped: it never appears in the envelope, encrypted or not

Opening an envelope verifies the integrity hash FIRST and only then
decrypts. A hash mismatch stops before any cipher work, so "hash failed"
and "tag failed" cannot be told apart by how long the call took.

The envelope is replaced as a whole, never patched field by field, because
the hash covers the ciphertext fields together.

Also here: card brand detection, Luhn validation and expiry checks. These
are predicates. Bad input gives UNKNOWN / False, never an exception.
"""

import enum
import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from cardvault.crypto.cipher import (
    CARD_FIELD_IV_LENGTH,
    AuthenticatedCipher,
    default_cipher,
)
from cardvault.crypto.integrity import generate_integrity_hash, verify_integrity_hash
from cardvault.exceptions import IntegrityViolationError, MalformedInputError


class CardBrand(str, enum.Enum):
    """Card network, detected from the leading digits of the number."""
    VISA = "VISA"
    MASTERCARD = "MASTERCARD"
    AMEX = "AMEX"
    DISCOVER = "DISCOVER"
    JCB = "JCB"
    DINERS = "DINERS"
    UNIONPAY = "UNIONPAY"
    MAESTRO = "MAESTRO"
    UNKNOWN = "UNKNOWN"


# ---------------------------------------------------------------------------
# Record types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CardRecord:
    """Plaintext card data as submitted at checkout. Lives only in memory."""
    card_number: str = field(repr=False)
    cvv: str = field(repr=False)
    expiry: str = field(repr=False)
    cardholder_name: str


@dataclass(frozen=True)
class CardEnvelope:
    """
    The stored form of a card. Field names match the PaymentMethod columns.

    Only cardholder_name, last_four_digits and card_brand are plaintext.
    """
    encrypted_card_number: str
    encrypted_expiry: str
    iv_card_number: str
    auth_tag_card_number: str
    iv_expiry: str
    auth_tag_expiry: str
    cardholder_name: str
    last_four_digits: str
    card_brand: str
    integrity_hash: str


@dataclass(frozen=True)
class CardDetails:
    """What an opened envelope yields. There is no CVV to return."""
    card_number: str = field(repr=False)
    expiry: str = field(repr=False)


# ---------------------------------------------------------------------------
# Seal / open
# ---------------------------------------------------------------------------

def integrity_payload(
    encrypted_card_number: str,
    encrypted_expiry: str,
    last_four_digits: str,
) -> str:
    """The fixed-order string the integrity hash is computed over."""
    return f"{encrypted_card_number}|{encrypted_expiry}|{last_four_digits}"


def seal_card_record(
    record: CardRecord,
    cipher: AuthenticatedCipher | None = None,
) -> CardEnvelope:
    """
    Encrypt a card record into a storable envelope.

    No validation happens here; the number is protected exactly as given.
    Use validate_card_number() beforehand to reject bad input.

    Args:
        record: The plaintext card data. record.cvv is ignored.
        cipher: Cipher to use. Defaults to one built from ENCRYPTION_KEY.

    Returns:
        A CardEnvelope with no CVV in any form.

    Raises:
        ConfigurationError: If no cipher is given and the key is missing.
    """
    cipher = cipher or default_cipher()

    card_number = cipher.encrypt(record.card_number, iv_length=CARD_FIELD_IV_LENGTH)
    expiry = cipher.encrypt(record.expiry, iv_length=CARD_FIELD_IV_LENGTH)

    last_four = record.card_number[-4:]
    brand = detect_card_brand(record.card_number)

    integrity_hash = generate_integrity_hash(
        integrity_payload(card_number.ciphertext, expiry.ciphertext, last_four)
    )

    return CardEnvelope(
        encrypted_card_number=card_number.ciphertext,
        encrypted_expiry=expiry.ciphertext,
        iv_card_number=card_number.iv,
        auth_tag_card_number=card_number.auth_tag,
        iv_expiry=expiry.iv,
        auth_tag_expiry=expiry.auth_tag,
        cardholder_name=record.cardholder_name,
        last_four_digits=last_four,
        card_brand=brand.value,
        integrity_hash=integrity_hash,
    )


def open_card_record(
    envelope: CardEnvelope,
    cipher: AuthenticatedCipher | None = None,
) -> CardDetails:
    """
    Verify an envelope's integrity hash, then decrypt its card number and expiry.

    Raises:
        IntegrityViolationError: The integrity hash does not match (checked
            before any decryption), either GCM tag fails, or a stored IV,
            tag or ciphertext cannot be parsed.
    """
    payload = integrity_payload(
        envelope.encrypted_card_number,
        envelope.encrypted_expiry,
        envelope.last_four_digits,
    )
    try:
        intact = verify_integrity_hash(payload, envelope.integrity_hash)
    except MalformedInputError:
        # The stored hash is attacker-reachable data, not a caller bug
        intact = False
    if not intact:
        raise IntegrityViolationError()

    cipher = cipher or default_cipher()
    try:
        card_number = cipher.decrypt(
            envelope.encrypted_card_number,
            envelope.iv_card_number,
            envelope.auth_tag_card_number,
        )
        expiry = cipher.decrypt(
            envelope.encrypted_expiry,
            envelope.iv_expiry,
            envelope.auth_tag_expiry,
        )
    except MalformedInputError:
        # A truncated tag reports the same failure as a flipped one
        raise IntegrityViolationError() from None
    return CardDetails(card_number=card_number, expiry=expiry)


# Names used by the billing code that calls into this module
encrypt_card_data = seal_card_record
decrypt_card_data = open_card_record


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def normalize_card_number(card_number: str) -> str:
    """Strip the spaces and dashes people type between digit groups."""
    return card_number.replace(" ", "").replace("-", "")


# Checked in order; the first matching (low, high) prefix range wins.
# A range compares the first len(str(low)) digits of the number.
_BRAND_RULES: tuple[tuple[CardBrand, tuple[tuple[int, int], ...]], ...] = (
    (CardBrand.VISA, ((4, 4),)),
    (CardBrand.MASTERCARD, ((51, 55), (2221, 2720))),
    (CardBrand.AMEX, ((34, 34), (37, 37))),
    (CardBrand.DISCOVER, ((6011, 6011), (622126, 622925), (644, 649), (65, 65))),
    (CardBrand.JCB, ((3528, 3589),)),
    (CardBrand.DINERS, ((300, 305), (36, 36), (38, 38))),
    (CardBrand.UNIONPAY, ((62, 62),)),
    (CardBrand.MAESTRO, (
        (5018, 5018), (5020, 5020), (5038, 5038), (5893, 5893),
        (6304, 6304), (6759, 6759), (6761, 6763),
    )),
)


def _prefix_in_range(number: str, low: int, high: int) -> bool:
    width = len(str(low))
    prefix = number[:width]
    if len(prefix) != width or not (prefix.isascii() and prefix.isdigit()):
        return False
    return low <= int(prefix) <= high


def detect_card_brand(card_number: str) -> CardBrand:
    """Return the card network for a number, or CardBrand.UNKNOWN."""
    number = normalize_card_number(card_number)
    for brand, ranges in _BRAND_RULES:
        if any(_prefix_in_range(number, low, high) for low, high in ranges):
            return brand
    return CardBrand.UNKNOWN


def validate_card_number(card_number: str) -> bool:
    """
    Check length (13-19 digits) and the Luhn checksum.

    Starting from the rightmost digit, every second digit is doubled (minus
    9 when the result exceeds 9); the number is valid when the sum of all
    digits is a multiple of 10.
    """
    number = normalize_card_number(card_number)
    if not (13 <= len(number) <= 19) or not (number.isascii() and number.isdigit()):
        return False

    total = 0
    for position, char in enumerate(reversed(number)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def parse_expiry(expiry: str) -> tuple[int, int]:
    """
    Parse "MM/YY" or "MM/YYYY" into (month, four-digit year).

    Raises:
        ValueError: If the string is not in either format or the month is
            outside 1-12.
    """
    month_part, sep, year_part = expiry.strip().partition("/")
    month_part, year_part = month_part.strip(), year_part.strip()
    if (
        not sep
        or len(month_part) not in (1, 2)
        or len(year_part) not in (2, 4)
        or not (month_part + year_part).isascii()
        or not (month_part + year_part).isdigit()
    ):
        raise ValueError("Expiry must be MM/YY or MM/YYYY")

    month = int(month_part)
    year = int(year_part)
    if len(year_part) == 2:
        year += 2000
    if not 1 <= month <= 12:
        raise ValueError("Expiry month must be between 01 and 12")
    return month, year


def is_card_expired(expiry: str, now: datetime | None = None) -> bool:
    """
    True once the expiry month has fully passed. Unparseable expiries count
    as expired.
    """
    now = now or datetime.now(timezone.utc)
    try:
        month, year = parse_expiry(expiry)
    except ValueError:
        return True
    return (year, month) < (now.year, now.month)


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------

_BASE36_DIGITS = string.digits + string.ascii_uppercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_transaction_id() -> str:
    """
    Return a bookkeeping identifier: TXN-<base36 epoch millis>-<16 hex>.

    Unique enough to tell transactions apart in logs; not a secret and not
    used for any security decision.
    """
    millis = time.time_ns() // 1_000_000
    return f"TXN-{_to_base36(millis)}-{secrets.token_hex(8)}".upper()
