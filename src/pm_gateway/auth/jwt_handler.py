"""Bearer tokens that carry a wallet address.

The wallet/session provider signs tokens with the JWT_SECRET it shares with
this service (HS256). ``sub`` is the caller's address, ``type`` is "access" or
"refresh". The create_* helpers back the refresh endpoint and the tests; the
provider is the normal issuer.

No revocation list: a token is good until ``exp``.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from config.settings import settings
from src.pm_common.address import is_address
from src.pm_common.errors import InvalidCredentialsError, InvalidRefreshTokenError

_ALGORITHM = settings.JWT_ALGORITHM
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
_REFRESH_EXPIRE = timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS)

ACCESS = "access"
REFRESH = "refresh"


def _encode(address: str, token_type: str, ttl: timedelta) -> str:
    now = datetime.now(UTC)
    claims: dict[str, Any] = {"sub": address, "type": token_type, "iat": now, "exp": now + ttl}
    return str(jwt.encode(claims, settings.JWT_SECRET, algorithm=_ALGORITHM))


def create_access_token(address: str) -> str:
    return _encode(address, ACCESS, _ACCESS_EXPIRE)


def create_refresh_token(address: str) -> str:
    """Long-lived; not rotated on use."""
    return _encode(address, REFRESH, _REFRESH_EXPIRE)


def _reject(expected_type: str) -> None:
    if expected_type == ACCESS:
        raise InvalidCredentialsError()
    raise InvalidRefreshTokenError()


def decode_token(token: str, expected_type: str) -> dict[str, str]:
    """Verify signature, expiry and token type; return the claims.

    A refresh token presented as an access token (or the reverse) is rejected
    the same way as a forged one. Raises InvalidCredentialsError for access
    tokens and InvalidRefreshTokenError for refresh tokens.
    """
    payload: dict[str, str] = {}
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[_ALGORITHM])
    except JWTError:
        _reject(expected_type)
    if payload.get("type") != expected_type:
        _reject(expected_type)
    return payload


def address_from_token(token: str, expected_type: str = ACCESS) -> str:
    """Lowercase wallet address named by a valid token's ``sub``."""
    subject = str(decode_token(token, expected_type).get("sub") or "")
    if not is_address(subject):
        _reject(expected_type)
    return subject.lower()
