"""Bearer-token verification for tokens issued by the external identity provider.

Claims used: `sub` (user id), optional `name` (label written to an order's
"last updated by") and optional `email`. This service never issues tokens in
production; create_access_token exists for local development and tests.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.smm_common.errors import InvalidTokenError


@dataclass(frozen=True)
class Identity:
    user_id: str
    name: str
    email: str = ""

    @property
    def audit_label(self) -> str:
        return self.name or self.user_id


def create_access_token(
    user_id: str,
    name: str = "",
    email: str = "",
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    now = datetime.now(UTC)
    payload = {"sub": user_id, "name": name, "email": email, "iat": now, "exp": now + expires_in}
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM))


def decode_token(token: str) -> Identity:
    """Raises InvalidTokenError if the token is malformed, expired or has no subject."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidTokenError() from None

    user_id = payload.get("sub")
    if not user_id:
        raise InvalidTokenError()
    return Identity(
        user_id=str(user_id),
        name=str(payload.get("name") or ""),
        email=str(payload.get("email") or ""),
    )
