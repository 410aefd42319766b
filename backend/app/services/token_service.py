import os
import logging
from datetime import datetime, timedelta, timezone
from jose import jwt, JWTError
from dotenv import load_dotenv

load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), '../../.env'))

logger = logging.getLogger(__name__)

JWT_SECRET = os.getenv("JWT_SECRET", "fallback-secret-key-for-development-only")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_TTL = int(os.getenv("ACCESS_TOKEN_TTL_SECONDS", "900"))
REFRESH_TOKEN_TTL = int(os.getenv("REFRESH_TOKEN_TTL_SECONDS", "604800"))

# Warn if using fallback secret
if JWT_SECRET == "fallback-secret-key-for-development-only":
    logger.warning("Using fallback JWT secret. Set JWT_SECRET environment variable for production.")


def create_token(data: dict, expires_in_seconds: int = ACCESS_TOKEN_TTL, scope: str | None = None):
    """Generic token creator (JWT). Optionally include a scope claim and custom expiry."""
    to_encode = data.copy()
    if scope:
        to_encode["scope"] = scope
    expire = datetime.now(timezone.utc) + timedelta(seconds=expires_in_seconds)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def create_access_token(data: dict, expires_in_seconds: int = ACCESS_TOKEN_TTL):
    """Create a short-lived access token (15 minutes default)."""
    return create_token(data, expires_in_seconds=expires_in_seconds, scope="access")


def create_refresh_token(data: dict, expires_in_seconds: int = REFRESH_TOKEN_TTL):
    """Create a long-lived refresh token (7 days default)."""
    return create_token(data, expires_in_seconds=expires_in_seconds, scope="refresh")


def create_jwt_token_pair(data: dict, access_expires_in: int = ACCESS_TOKEN_TTL, refresh_expires_in: int = REFRESH_TOKEN_TTL):
    """Create both access and refresh tokens."""
    return {
        "access_token": create_access_token(data, access_expires_in),
        "refresh_token": create_refresh_token(data, refresh_expires_in),
        "token_type": "bearer",
        "expires_in": access_expires_in,
    }


def verify_token(token: str):
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.info("Invalid or expired token: %s", e)
        return None


def verify_refresh_token(token: str):
    """Verify a refresh token and return the payload."""
    payload = verify_token(token)
    if payload and payload.get("scope") == "refresh":
        return payload
    return None


def refresh_access_token(refresh_token: str):
    """Create a new access token from a valid refresh token."""
    payload = verify_refresh_token(refresh_token)
    if not payload:
        return None

    # Remove token-specific claims and create new access token
    token_data = {k: v for k, v in payload.items() if k not in ["exp", "scope"]}
    return create_access_token(token_data)
