"""
Session validation.

Resolves the session token sent by the browser (the auth cookie, or a bearer
token from non-browser clients) to the authenticated user, through the data
platform's auth lookup.
"""

from typing import Optional
import structlog

from trackhabit.domain.errors import AuthenticationError
from trackhabit.domain.models.entities import SessionContext
from trackhabit.infrastructure.persistence.base import DataStore

logger = structlog.get_logger(__name__)


def extract_token(cookie_value: Optional[str], authorization: Optional[str]) -> Optional[str]:
    """
    Pick the session token from the request

    Args:
        cookie_value: Value of the session cookie, if any
        authorization: Value of the Authorization header, if any

    Returns:
        The token, preferring the cookie, or None
    """

    if cookie_value:
        return cookie_value

    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
        return token or None

    return None


async def verify_session(token: Optional[str], store: DataStore) -> SessionContext:
    """
    Verify a session token

    Args:
        token: Session token to verify
        store: Data store exposing the auth-session lookup

    Returns:
        Session context for the authenticated user

    Raises:
        AuthenticationError: If the token is missing or rejected
    """

    if not token:
        raise AuthenticationError("Unauthorized")

    user = await store.get_session_user(token)
    if not user or not user.get("id"):
        logger.info("Session rejected", token_prefix=token[:10] if len(token) > 10 else token)
        raise AuthenticationError("Unauthorized")

    return SessionContext(user_id=user["id"], email=user.get("email"), access_token=token)
