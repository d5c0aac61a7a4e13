from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from jose import JWTError, jwt

from bamb.core.access.scope import Caller
from bamb.core.config import get_settings
from bamb.core.exceptions import AuthenticationError, INVALID_TOKEN, MISSING_TOKEN
from bamb.core.logger import get_logger

logger = get_logger(__name__)


def create_caller_token(
    user_id: int,
    roles: Iterable[str],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed caller token carrying ``{user: {id, roles}}``."""
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    expire = datetime.now(timezone.utc) + expires_delta

    to_encode = {
        "sub": str(user_id),
        "exp": expire,
        "type": "access",
        "user": {"id": user_id, "roles": sorted(set(roles))},
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def extract_token(header_value: Optional[str]) -> str:
    """Strip an optional ``Bearer`` prefix from the token header."""
    if not header_value:
        raise AuthenticationError("Missing caller token", MISSING_TOKEN)
    scheme, _, credentials = header_value.partition(" ")
    if credentials and scheme.lower() == "bearer":
        return credentials.strip()
    return header_value.strip()


def decode_caller(token: str, known_roles: Optional[Iterable[str]] = None) -> Caller:
    """Decode and validate a caller token.

    When ``known_roles`` is given, roles the grant registry has never heard
    of are dropped before any permission resolution happens.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as exc:
        logger.info("Rejected caller token: %s", exc)
        raise AuthenticationError("Invalid caller token", INVALID_TOKEN) from exc

    user = payload.get("user")
    if not isinstance(user, dict) or user.get("id") is None:
        raise AuthenticationError("Caller token has no user claim", INVALID_TOKEN)

    roles = user.get("roles") or []
    if not isinstance(roles, list):
        raise AuthenticationError("Caller token roles must be a list", INVALID_TOKEN)

    roles = {str(role) for role in roles}
    if known_roles is not None:
        known = set(known_roles)
        unknown = roles - known
        if unknown:
            logger.debug("Dropping unknown roles %s for user %s", sorted(unknown), user["id"])
        roles &= known

    try:
        user_id = int(user["id"])
    except (TypeError, ValueError) as exc:
        raise AuthenticationError("Caller token user id is not an integer", INVALID_TOKEN) from exc

    return Caller(id=user_id, roles=frozenset(roles))
