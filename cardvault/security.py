"""
Authentication primitives: password hashing and JWT access tokens.

Card data protection lives in cardvault.crypto; this module only covers
who the caller is.

PASSWORD HASHING (Argon2id via passlib)
  Memory-hard and time-hard, so GPU cracking of a leaked users table is
  expensive. passlib's CryptContext verifies old hashes with whatever scheme
  produced them and re-hashes new passwords with the current one.

JWT TOKENS (HS256 via python-jose)
  Signed with SECRET_KEY. The "sub" claim carries the user id and "exp"
  ends the token's life after ACCESS_TOKEN_EXPIRE_MINUTES.
"""

import uuid
from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext

from cardvault.config import settings


pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Hash a plaintext password with Argon2id."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plaintext password against a stored Argon2 hash (constant time)."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: uuid.UUID, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT for a user.

    Args:
        user_id: Becomes the "sub" claim.
        expires_delta: Custom lifetime. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.

    Returns:
        An encoded JWT string.
    """
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT access token.

    Raises:
        JWTError: If the token is expired, tampered with, or invalid.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
