"""FastAPI dependencies: get_current_identity, require_admin.

Usage in any protected router:
    from src.smm_gateway.auth.dependencies import get_current_identity

    @router.get("/protected")
    async def protected(identity: Identity = Depends(get_current_identity)):
        ...
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.smm_common.errors import InvalidTokenError
from src.smm_gateway.auth.jwt_handler import Identity, decode_token
from src.smm_ledger.api.dependencies import get_ledger_service
from src.smm_ledger.application.service import LedgerService

bearer_scheme = HTTPBearer(auto_error=False)

# Reusable 401 exception with WWW-Authenticate header
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Identity:
    """Validate the bearer token and return the caller's identity.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    """
    if credentials is None:
        raise _CREDENTIALS_EXCEPTION
    try:
        return decode_token(credentials.credentials)
    except InvalidTokenError:
        raise _CREDENTIALS_EXCEPTION from None


async def require_admin(
    identity: Annotated[Identity, Depends(get_current_identity)],
    service: Annotated[LedgerService, Depends(get_ledger_service)],
) -> Identity:
    """Verify the caller's stored profile has the admin role.

    Raises HTTP 403 (AdminRequiredError) otherwise.
    """
    await service.require_admin(identity.user_id)
    return identity
