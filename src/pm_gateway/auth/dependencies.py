"""FastAPI dependencies: get_current_caller / require_admin.

The wallet/session layer authenticates the user and issues a JWT whose
``sub`` claim is the wallet address. We only verify the token and expose the
address as the caller identity.

Usage in any protected router:
    from src.pm_gateway.auth.dependencies import CurrentCaller

    @router.post("/protected")
    async def protected(caller: CurrentCaller):
        ...
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from config.settings import settings
from src.pm_common.errors import InvalidCredentialsError, UnauthorizedError
from src.pm_gateway.auth.jwt_handler import address_from_token

# tokenUrl tells Swagger UI where to get a token (used for the "Authorize" button)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/refresh")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


@dataclass(frozen=True)
class Caller:
    address: str        # lowercase 0x-prefixed wallet address
    is_admin: bool = False


async def get_current_caller(
    token: str = Depends(oauth2_scheme),
) -> Caller:
    """Extract and validate the JWT Bearer token, return the Caller.

    Raises HTTP 401 if the token is missing, invalid, expired, or its subject
    is not a wallet address.
    """
    try:
        address = address_from_token(token)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None
    return Caller(address=address, is_admin=address in settings.ADMIN_ADDRESSES)


async def require_admin(caller: Caller = Depends(get_current_caller)) -> Caller:
    """Verify the caller holds the admin/resolver capability.

    Raises HTTP 403 (UnauthorizedError) otherwise.
    """
    if not caller.is_admin:
        raise UnauthorizedError("Admin capability required")
    return caller


CurrentCaller = Annotated[Caller, Depends(get_current_caller)]
AdminCaller = Annotated[Caller, Depends(require_admin)]
