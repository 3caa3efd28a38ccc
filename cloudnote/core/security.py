"""
Security Utilities.

Password hashing for note locks and JWT handling for admin sessions.
"""

import hmac
from datetime import timedelta
from typing import Any

import bcrypt
from jose import JWTError, jwt

from cloudnote.core.config import get_app_config, get_settings
from cloudnote.core.exceptions import AuthenticationError
from cloudnote.core.logging import get_logger
from cloudnote.core.utils import utc_now

logger = get_logger(__name__)

ADMIN_ROLE = "admin"


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a password using bcrypt with the configured cost factor."""
    if rounds is None:
        rounds = get_app_config().security.passwords.bcrypt_rounds
    password_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash. A malformed hash never verifies."""
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8"),
        )
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def verify_admin_credentials(username: str, password: str) -> bool:
    """Compare submitted admin credentials with the configured ones in constant time."""
    settings = get_settings()
    user_ok = hmac.compare_digest(username.encode("utf-8"), settings.admin_user.encode("utf-8"))
    password_ok = hmac.compare_digest(password.encode("utf-8"), settings.admin_password.encode("utf-8"))
    return user_ok and password_ok


def create_access_token(subject: str, expires_delta: timedelta | None = None) -> str:
    """
    Create an admin JWT access token.

    Args:
        subject: Admin username placed in the sub claim
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token
    """
    settings = get_settings()
    jwt_config = get_app_config().security.jwt

    if expires_delta is None:
        expires_delta = timedelta(seconds=jwt_config.session_duration_seconds)

    to_encode: dict[str, Any] = {
        "sub": subject,
        "role": ADMIN_ROLE,
        "exp": utc_now() + expires_delta,
        "aud": jwt_config.audience,
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=jwt_config.algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        AuthenticationError: If token is invalid or expired
    """
    settings = get_settings()
    jwt_config = get_app_config().security.jwt
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[jwt_config.algorithm],
            audience=jwt_config.audience,
        )
    except JWTError as e:
        logger.warning("Token decode failed", extra={"error": str(e)})
        raise AuthenticationError("Invalid or expired token") from e

    if payload.get("role") != ADMIN_ROLE:
        raise AuthenticationError("Invalid or expired token")
    return payload


def extract_bearer_token(authorization: str | None) -> str:
    """
    Pull the token out of an Authorization header.

    Raises:
        AuthenticationError: If the header is missing or not a Bearer credential
    """
    if not authorization:
        raise AuthenticationError("Authentication required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authentication required")
    return token.strip()
