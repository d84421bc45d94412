"""
Security utilities: password hashing and JWT tokens.

This module centralizes all cryptographic operations so they're easy to
audit and update. Two concerns are handled here:

1. PASSWORD HASHING (Argon2)
   - Passwords are never stored in plaintext
   - Every hash embeds its own random salt, so hashing the same password
     twice yields two different strings that both verify
   - We use passlib's CryptContext for safe, high-level Argon2 operations
   - The time cost is configurable (ARGON2_TIME_COST) with a safe default

2. JWT TOKENS (JSON Web Tokens)
   - After login/registration, the user receives a signed JWT carrying their
     identity claims: sub (user id), email, role, department, iat, exp
   - The token is signed with SECRET_KEY using HS256 (HMAC-SHA256)
   - Tokens expire after ACCESS_TOKEN_EXPIRE_MINUTES (default: 60 min)
   - There is no revocation list and no refresh token: expiry is the only way
     a token stops being valid. Deactivated users are stopped by the
     authentication dependency, which re-reads the user on every request.

Verification failures are reported as three distinct exception types so the
caller can tell a garbage string from a forged one from a stale one.
"""

from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from invoice_api.config import settings
from invoice_api.exceptions import WeakPasswordError


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

# If we ever migrate off argon2, passlib handles the transition: old hashes
# are verified with the original scheme, new passwords use the new one.
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__time_cost=settings.ARGON2_TIME_COST,
)


def hash_password(plain_password: str) -> str:
    """
    Hash a plaintext password using Argon2id.

    Args:
        plain_password: The user's raw password input.

    Returns:
        An Argon2 hash string (e.g., "$argon2id$v=19$m=65536,t=3,p=4$...").

    Raises:
        WeakPasswordError: If the password is empty or shorter than
            PASSWORD_MIN_LENGTH.
    """
    if not plain_password or len(plain_password) < settings.PASSWORD_MIN_LENGTH:
        raise WeakPasswordError(settings.PASSWORD_MIN_LENGTH)
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plaintext password against a stored Argon2 hash.

    Never raises on a mismatch. A stored value that isn't a recognizable
    hash also counts as a mismatch.

    Returns:
        True if the password matches, False otherwise.
    """
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


# Verified against when the login email is unknown, so both failure paths
# spend the same time hashing.
DUMMY_PASSWORD_HASH = pwd_context.hash("not-a-real-password")


# ---------------------------------------------------------------------------
# 2. JWT Tokens
# ---------------------------------------------------------------------------

class TokenError(Exception):
    """Base class for token verification failures."""


class MalformedTokenError(TokenError):
    """The string is not a structurally valid JWT."""


class TokenSignatureError(TokenError):
    """The signature (or a registered claim) failed verification."""


class TokenExpiredError(TokenError):
    """The token is authentic but its exp claim is in the past."""


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token.

    The payload contains the supplied claims plus:
      - "iat": Issued-at timestamp
      - "exp": Expiration timestamp — after this, the token is rejected

    Args:
        data: Dictionary of claims to encode (must include "sub").
        expires_delta: Optional custom lifetime. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.

    Returns:
        An encoded JWT string.
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)

    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"iat": now, "exp": now + expires_delta})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def identity_claims(user) -> dict:
    """Claims embedded in every token issued for a user."""
    return {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.value,
        "department": user.department.value,
    }


def issue_token_for(user, expires_delta: timedelta | None = None) -> str:
    return create_access_token(identity_claims(user), expires_delta)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT access token.

    Raises:
        MalformedTokenError: The token can't even be parsed.
        TokenSignatureError: The signature doesn't match SECRET_KEY, or a
            claim is invalid.
        TokenExpiredError: The token was valid but has expired.

    Returns:
        The decoded payload dictionary (contains "sub", "exp", etc.).
    """
    try:
        jwt.get_unverified_header(token)
    except JWTError as exc:
        raise MalformedTokenError(str(exc)) from exc

    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpiredError(str(exc)) from exc
    except JWTError as exc:
        raise TokenSignatureError(str(exc)) from exc
