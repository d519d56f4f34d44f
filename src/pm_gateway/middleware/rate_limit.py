"""Rate limiting middleware for mutating requests.

Fixed-window counting in Redis (INCR + EXPIRE):
  - Only POST/PUT/PATCH/DELETE are counted; reads are never limited
  - Key pattern: "ratelimit:{address_or_ip}:{epoch_minute}"
  - Identity is the bearer token's address when it decodes, else the client IP
  - Over the limit → 429 with the RateLimitError envelope and Retry-After

settings.RATE_LIMIT_PER_MINUTE = 0 disables the limiter. If Redis is
unreachable the request is let through and a warning is logged.
"""

import logging
import time

from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from config.settings import settings
from src.pm_common.errors import AppError, RateLimitError
from src.pm_common.redis_client import get_redis
from src.pm_common.response import error_response
from src.pm_gateway.auth.jwt_handler import address_from_token

logger = logging.getLogger(__name__)

_LIMITED_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
_WINDOW_SECONDS = 60


def _identity(request: Request) -> str:
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        try:
            return address_from_token(auth[7:].strip())
        except AppError:
            pass
    # Extract real client IP behind a reverse proxy
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        limit = settings.RATE_LIMIT_PER_MINUTE
        if limit <= 0 or request.method not in _LIMITED_METHODS:
            return await call_next(request)

        now = int(time.time())
        window = now // _WINDOW_SECONDS
        key = f"ratelimit:{_identity(request)}:{window}"
        try:
            redis = await get_redis()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, _WINDOW_SECONDS)
        except RedisError as e:
            logger.warning("Rate limiter unavailable, allowing request: %s", e)
            return await call_next(request)

        if count > limit:
            err = RateLimitError()
            resp = error_response(err.code, err.message, request)
            retry_after = _WINDOW_SECONDS - (now % _WINDOW_SECONDS)
            return JSONResponse(
                status_code=err.http_status,
                content=resp.model_dump(),
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)
