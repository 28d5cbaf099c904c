"""
Integrity Hasher — SHA-256 digests with timing-safe verification.

A second integrity layer on top of GCM. Each GCM tag only protects its own
field, so separately stored columns could be swapped between rows without
any tag failing. Hashing the fixed concatenation of a record's ciphertexts
(and its last four digits) binds them together as one unit.
"""

import hashlib
import hmac
import re

from cardvault.exceptions import MalformedInputError

_HEX_RE = re.compile(r"(?:[0-9a-fA-F]{2})*")


def generate_integrity_hash(data: str) -> str:
    """Return the lowercase hex SHA-256 digest of the UTF-8 bytes of `data`."""
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def verify_integrity_hash(data: str, expected_hash: str) -> bool:
    """
    Recompute the digest of `data` and compare it with `expected_hash`.

    Both digests are compared as raw bytes with hmac.compare_digest, whose
    running time does not depend on where the inputs first differ. A digest
    of the wrong length simply compares unequal.

    Returns:
        True on a match, False on any mismatch.

    Raises:
        MalformedInputError: If `expected_hash` is not hexadecimal.
    """
    if not isinstance(expected_hash, str) or not _HEX_RE.fullmatch(expected_hash):
        # bytes.fromhex would skip embedded whitespace
        raise MalformedInputError("Integrity hash is not valid hexadecimal")
    expected = bytes.fromhex(expected_hash)

    computed = hashlib.sha256(data.encode("utf-8")).digest()
    return hmac.compare_digest(computed, expected)
