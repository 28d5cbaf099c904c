"""
Authenticated Cipher — AES-256-GCM with explicit IV and tag handling.

Every encryption draws a fresh random IV from the OS entropy pool and
produces a 128-bit authentication tag. The three values are stored
together as an EncryptedField (all base64):

    ciphertext  — encrypted UTF-8 bytes of the plaintext
    iv          — the IV used for this one encryption, never reused
    auth_tag    — GCM tag over the ciphertext

Decryption returns plaintext only when the tag verifies. A tampered
ciphertext, IV or tag, a truncated ciphertext, or the wrong key all raise
the same IntegrityViolationError. Input that cannot even be parsed
(invalid base64, an IV or tag of impossible length) raises
MalformedInputError instead. Neither path ever yields partial plaintext.

Why GCM?
  GCM authenticates and encrypts in a single pass, so there is no
  MAC-then-encrypt ordering to get wrong and no padding (it is a CTR-based
  stream mode), which rules out padding-oracle attacks. The tag is kept at
  the full 128 bits.
"""

import base64
import binascii
import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from cardvault.crypto.keys import KEY_LENGTH_BYTES, get_encryption_key
from cardvault.exceptions import (
    ConfigurationError,
    IntegrityViolationError,
    MalformedInputError,
)

# IV for general-purpose encrypt(); card envelope fields use the 96-bit
# nonce GCM is specified around.
IV_LENGTH = 16
CARD_FIELD_IV_LENGTH = 12
ACCEPTED_IV_LENGTHS = (CARD_FIELD_IV_LENGTH, IV_LENGTH)
AUTH_TAG_LENGTH = 16


@dataclass(frozen=True)
class EncryptedField:
    """One encrypted value: base64 ciphertext, IV and authentication tag."""
    ciphertext: str
    iv: str
    auth_tag: str


def generate_iv(length: int = IV_LENGTH) -> bytes:
    """Return `length` fresh bytes from the OS CSPRNG. Thread-safe."""
    return os.urandom(length)


def _b64encode(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def _b64decode(value: str, field: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError, TypeError):
        raise MalformedInputError(f"{field} is not valid base64")


class AuthenticatedCipher:
    """
    AES-256-GCM bound to one key for its whole lifetime.

    The key is injected at construction, which keeps the dependency on
    configuration explicit and lets tests run with throwaway keys.
    Instances hold no other state and are safe to share between threads.
    """

    __slots__ = ("_aesgcm",)

    def __init__(self, key: bytes):
        if len(key) != KEY_LENGTH_BYTES:
            raise ConfigurationError(
                f"Encryption key must be {KEY_LENGTH_BYTES} bytes (256 bits)"
            )
        self._aesgcm = AESGCM(key)

    def __repr__(self) -> str:
        return "AuthenticatedCipher(key=<redacted>)"

    def encrypt(self, plaintext: str, iv_length: int = IV_LENGTH) -> EncryptedField:
        """
        Encrypt a string under a freshly generated IV.

        Empty strings are valid input: GCM still produces a tag over the
        empty stream.

        Args:
            plaintext: The value to protect.
            iv_length: IV size in bytes, 12 or 16.

        Returns:
            EncryptedField with base64 ciphertext, IV and tag.
        """
        if iv_length not in ACCEPTED_IV_LENGTHS:
            raise MalformedInputError(f"Unsupported IV length: {iv_length}")

        iv = generate_iv(iv_length)
        # AESGCM appends the 16-byte tag to the ciphertext
        sealed = self._aesgcm.encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]

        return EncryptedField(
            ciphertext=_b64encode(ciphertext),
            iv=_b64encode(iv),
            auth_tag=_b64encode(tag),
        )

    def decrypt(self, ciphertext: str, iv: str, auth_tag: str) -> str:
        """
        Decrypt and authenticate one encrypted field.

        Args:
            ciphertext: Base64 ciphertext from encrypt().
            iv: Base64 IV stored alongside it.
            auth_tag: Base64 authentication tag stored alongside it.

        Returns:
            The original plaintext.

        Raises:
            MalformedInputError: Invalid base64, or an IV/tag whose length
                this cipher never produces.
            IntegrityViolationError: The tag does not verify.
        """
        raw_ciphertext = _b64decode(ciphertext, "ciphertext")
        raw_iv = _b64decode(iv, "iv")
        raw_tag = _b64decode(auth_tag, "auth_tag")

        if len(raw_iv) not in ACCEPTED_IV_LENGTHS:
            raise MalformedInputError("iv has an invalid length")
        if len(raw_tag) != AUTH_TAG_LENGTH:
            raise MalformedInputError("auth_tag has an invalid length")

        try:
            plaintext = self._aesgcm.decrypt(raw_iv, raw_ciphertext + raw_tag, None)
        except InvalidTag:
            raise IntegrityViolationError() from None

        return plaintext.decode("utf-8")


def default_cipher() -> AuthenticatedCipher:
    """Build a cipher from the configured key. Called once per operation."""
    return AuthenticatedCipher(get_encryption_key())


def encrypt(plaintext: str) -> EncryptedField:
    """Encrypt with the configured key and a fresh 16-byte IV."""
    return default_cipher().encrypt(plaintext)


def decrypt(ciphertext: str, iv: str, auth_tag: str) -> str:
    """Decrypt with the configured key. See AuthenticatedCipher.decrypt."""
    return default_cipher().decrypt(ciphertext, iv, auth_tag)
