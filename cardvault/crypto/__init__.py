"""
Payment-data protection core.

Everything the rest of the application needs to protect cardholder data
at rest is re-exported here:

    from cardvault.crypto import seal_card_record, open_card_record

Modules:
  - keys:      ENCRYPTION_KEY resolution and provisioning
  - cipher:    AES-256-GCM encrypt/decrypt with explicit IV and tag
  - integrity: SHA-256 digest and timing-safe verification
  - cards:     card envelope codec, brand detection, Luhn, expiry checks
"""

from cardvault.crypto.keys import (  # noqa: F401
    generate_encryption_key,
    get_encryption_key,
    parse_encryption_key,
)
from cardvault.crypto.cipher import (  # noqa: F401
    AuthenticatedCipher,
    EncryptedField,
    decrypt,
    default_cipher,
    encrypt,
    generate_iv,
)
from cardvault.crypto.integrity import (  # noqa: F401
    generate_integrity_hash,
    verify_integrity_hash,
)
from cardvault.crypto.cards import (  # noqa: F401
    CardBrand,
    CardDetails,
    CardEnvelope,
    CardRecord,
    decrypt_card_data,
    detect_card_brand,
    encrypt_card_data,
    generate_transaction_id,
    is_card_expired,
    normalize_card_number,
    open_card_record,
    parse_expiry,
    seal_card_record,
    validate_card_number,
)
