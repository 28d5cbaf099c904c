"""
Key Provider — resolves the 256-bit AES key from configuration.

The key is supplied once per deployment as ENCRYPTION_KEY: exactly 64
hexadecimal characters, decoding to 32 raw bytes. Anything else is a
ConfigurationError. There is no fallback or development default key:
a service that cannot find its key must not encrypt or decrypt anything.

Provisioning a new key (run once, out-of-band):
    python -m cardvault.crypto.keys
"""

import re
import secrets

from cardvault.config import Settings, settings
from cardvault.exceptions import ConfigurationError

KEY_LENGTH_BYTES = 32
KEY_HEX_LENGTH = KEY_LENGTH_BYTES * 2

_HEX_KEY_RE = re.compile(r"[0-9a-fA-F]{%d}" % KEY_HEX_LENGTH)


def parse_encryption_key(value: str | None) -> bytes:
    """
    Validate and decode a hex-encoded AES-256 key.

    Args:
        value: The raw configuration value.

    Returns:
        The 32-byte key.

    Raises:
        ConfigurationError: If the value is missing, empty, or not exactly
            64 hexadecimal characters.
    """
    if not value:
        raise ConfigurationError("ENCRYPTION_KEY is not configured")
    if not _HEX_KEY_RE.fullmatch(value):
        # Never echo the value back: it may be a real key with a typo
        raise ConfigurationError(
            f"ENCRYPTION_KEY must be {KEY_HEX_LENGTH} hexadecimal characters (256 bits)"
        )
    return bytes.fromhex(value)


def get_encryption_key(config: Settings | None = None) -> bytes:
    """
    Return the process encryption key as 32 raw bytes.

    Re-reads the configuration on every call; the value is constant for the
    process lifetime so repeated reads are harmless.

    Args:
        config: Settings to read from. Defaults to the process singleton.

    Raises:
        ConfigurationError: If ENCRYPTION_KEY is missing or malformed.
    """
    config = config or settings
    return parse_encryption_key(config.ENCRYPTION_KEY)


def generate_encryption_key() -> str:
    """Draw a fresh 256-bit key from the OS CSPRNG and return it hex-encoded."""
    return secrets.token_hex(KEY_LENGTH_BYTES)


if __name__ == "__main__":
    print(generate_encryption_key())
