"""
Security utilities for authentication.
Includes password hashing, session keys and the signed session cookie.
"""
from datetime import datetime, timedelta
from typing import Optional, Tuple
from jose import JWTError, jwt
from passlib.context import CryptContext
import bcrypt
import secrets
import hashlib

import config

# Password hashing
# Configure to avoid wrap bug detection issues
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__ident="2b",  # Use bcrypt 2b identifier
    bcrypt__rounds=12  # Standard rounds
)

SESSION_TOKEN_TYPE = "session"


# Password utilities
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    try:
        # Try direct bcrypt first
        password_bytes = plain_password.encode('utf-8')
        hash_bytes = hashed_password.encode('utf-8')
        return bcrypt.checkpw(password_bytes, hash_bytes)
    except ValueError:
        # Fallback to passlib for hashes bcrypt cannot parse directly
        return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt.

    Note: Password validation should be done before calling this function.
    Use core.validators.validate_password() to check password requirements.
    """
    password_bytes = password.encode('utf-8')
    if len(password_bytes) > 72:
        raise ValueError("Password cannot be longer than 72 bytes. Please use a shorter password.")

    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password_bytes, salt).decode('utf-8')


# Session utilities
def generate_session_key() -> Tuple[str, str]:
    """
    Generate a new session key.

    Returns:
        Tuple of (session_key, session_hash); only the hash is persisted
    """
    session_key = secrets.token_urlsafe(32)
    return session_key, hash_session_key(session_key)


def hash_session_key(key: str) -> str:
    """
    Hash a session key for storage/comparison.

    Args:
        key: Session key string

    Returns:
        Hashed key
    """
    return hashlib.sha256(key.encode()).hexdigest()


def sign_session_cookie(
    session_key: str,
    secret_key: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Wrap a session key in a signed token suitable for a cookie value.

    Args:
        session_key: Random session key
        secret_key: Secret key for signing
        expires_delta: Optional expiration time

    Returns:
        Encoded JWT
    """
    now = datetime.utcnow()
    expire = now + (expires_delta or timedelta(hours=config.SESSION_EXPIRE_HOURS))
    to_encode = {
        "sid": session_key,
        "exp": expire,
        "iat": now,
        "type": SESSION_TOKEN_TYPE
    }
    return jwt.encode(to_encode, secret_key, algorithm=config.ALGORITHM)


def unsign_session_cookie(token: Optional[str], secret_key: str) -> Optional[str]:
    """
    Verify a session cookie and return the session key it carries.

    Args:
        token: Cookie value
        secret_key: Secret key for verification

    Returns:
        Session key, or None if the cookie is missing, tampered with or expired
    """
    if not token:
        return None
    try:
        payload = jwt.decode(token, secret_key, algorithms=[config.ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != SESSION_TOKEN_TYPE:
        return None
    return payload.get("sid")
