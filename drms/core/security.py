"""
Security helpers

Password hashing and JWT token issuing / verification.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID

import bcrypt
from jose import JWTError, jwt

from .config import settings

logger = logging.getLogger(__name__)

# At least 8 characters with letters and digits
PASSWORD_PATTERN = re.compile(r'^(?=.*[A-Za-z])(?=.*\d).{8,}$')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain password against a bcrypt hash"""
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError as e:
        logger.warning(f"Password verification failed: {e}")
        return False


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def check_password_strength(password: str) -> bool:
    """
    Check password strength

    Rule: at least 8 characters containing letters and digits
    """
    return bool(PASSWORD_PATTERN.match(password))


def create_access_token(
    user_id: UUID,
    username: str,
    roles: list[str],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create an access token

    Args:
        user_id: user id
        username: login name
        roles: role codes held by the user
        expires_delta: lifetime override
    """
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.jwt_access_expire_minutes)

    payload = {
        "sub": str(user_id),
        "username": username,
        "roles": roles,
        "exp": expire,
        "type": "access",
        "iat": datetime.utcnow(),
    }

    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_refresh_token(
    user_id: UUID,
    expires_delta: Optional[timedelta] = None,
) -> str:
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(days=settings.jwt_refresh_expire_days)

    payload = {
        "sub": str(user_id),
        "exp": expire,
        "type": "refresh",
        "iat": datetime.utcnow(),
    }

    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict[str, Any]]:
    """
    Decode a token

    Returns:
        the payload, or None when the signature or expiry check fails
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm]
        )
    except JWTError as e:
        logger.warning(f"Token decode failed: {e}")
        return None


def verify_access_token(token: str) -> Optional[dict[str, Any]]:
    payload = decode_token(token)
    if payload is None:
        return None

    if payload.get("type") != "access":
        logger.warning("Token type is not access")
        return None

    return payload


def verify_refresh_token(token: str) -> Optional[str]:
    """
    Verify a refresh token

    Returns:
        the user id on success, otherwise None
    """
    payload = decode_token(token)
    if payload is None:
        return None

    if payload.get("type") != "refresh":
        logger.warning("Token type is not refresh")
        return None

    return payload.get("sub")
