"""Bearer-token authentication.

Tokens are Fernet tokens whose plaintext is the user id; Fernet's
embedded timestamp provides expiry.  The key comes from
``CONTACT_GROUPS_TOKEN_SECRET``.
"""

from __future__ import annotations

import structlog
from cryptography.fernet import Fernet, InvalidToken
from fastapi import Request

from contact_groups.config.settings import get_settings
from contact_groups.errors import AuthenticationError, ConfigurationError

logger = structlog.get_logger()


def get_fernet(secret: str | None = None) -> Fernet:
    """Return a Fernet instance for ``secret`` or the configured token secret."""
    key = secret if secret is not None else get_settings().token_secret
    if not key:
        raise ConfigurationError(
            "Token secret is not configured; set CONTACT_GROUPS_TOKEN_SECRET"
        )
    try:
        return Fernet(key.encode())
    except ValueError as exc:
        raise ConfigurationError("Token secret is not a valid Fernet key") from exc


def issue_token(user_id: str, secret: str | None = None) -> str:
    if not user_id:
        raise AuthenticationError("Cannot issue a token for an empty user id")
    return get_fernet(secret).encrypt(user_id.encode()).decode()


def verify_token(token: str, ttl: int | None = None, secret: str | None = None) -> str:
    """Return the user id carried by ``token``.

    Raises:
        AuthenticationError: If the token is malformed, forged or older
            than ``ttl`` seconds.
        ConfigurationError: If the token secret is missing or malformed.
    """
    try:
        user_id = get_fernet(secret).decrypt(token.encode(), ttl=ttl).decode()
    except InvalidToken as exc:
        raise AuthenticationError("Invalid or expired token") from exc
    if not user_id:
        raise AuthenticationError("Invalid or expired token")
    return user_id


def user_id_from_header(authorization: str | None, ttl: int | None = None) -> str:
    if not authorization:
        raise AuthenticationError("Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authorization header must use the Bearer scheme")
    return verify_token(token.strip(), ttl=ttl)


async def get_current_user_id(request: Request) -> str:
    """FastAPI dependency resolving the authenticated user id."""
    user_id = user_id_from_header(
        request.headers.get("Authorization"), ttl=get_settings().token_ttl_seconds
    )
    structlog.contextvars.bind_contextvars(user_id=user_id)
    return user_id
