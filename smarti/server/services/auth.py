"""
Authentication.

The auth provider issues session tokens as JWTs, sent either as
``Authorization: Bearer <jwt>`` or in the session cookie. The user id is the
``sub`` claim. Invalid or expired tokens are treated as anonymous.
"""

from typing import Optional

import jwt
from fastapi import Request

from smarti.core.errors import AuthorizationError
from smarti.core.logging_config import get_logger
from smarti.core.services.access import is_admin
from smarti.server.core.config import AuthConfig, settings

logger = get_logger(__name__)


def _extract_token(request: Request, config: AuthConfig) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token:
        return token.strip()
    return request.cookies.get(config.session_cookie)


def decode_session_token(token: str, config: AuthConfig) -> Optional[str]:
    """Verify a session token and return its subject."""
    options = {} if config.jwt_audience else {"verify_aud": False}
    try:
        payload = jwt.decode(
            token,
            config.jwt_key,
            algorithms=config.jwt_algorithms,
            audience=config.jwt_audience,
            options=options,
        )
    except jwt.PyJWTError as e:
        logger.debug(f"Rejected session token: {e}")
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) and subject else None


async def get_current_user_id(request: Request) -> Optional[str]:
    """User id of the caller, or None for anonymous requests."""
    config = settings.auth
    token = _extract_token(request, config)
    if not token:
        return None
    return decode_session_token(token, config)


async def require_user(request: Request) -> str:
    user_id = await get_current_user_id(request)
    if not user_id:
        raise AuthorizationError("Unauthorized", 401)
    return user_id


async def require_admin(request: Request) -> str:
    """Admin API guard: 401 for anonymous callers, 403 for signed-in non-admins."""
    user_id = await get_current_user_id(request)
    if not user_id:
        raise AuthorizationError("UnAuthorized", 401)
    if not is_admin(user_id):
        raise AuthorizationError("UnAuthorized", 403)
    return user_id
