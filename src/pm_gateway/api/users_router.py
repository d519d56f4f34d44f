"""Username registry endpoints.

GET  /users/{address}/username                    lookup
PUT  /users/me/username                           set (free) or change (fee)
GET  /usernames/{username}/availability           case-insensitive availability
"""

from fastapi import APIRouter, Request

from src.pm_common.address import normalize_address
from src.pm_common.database import DbSession
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import CurrentCaller
from src.pm_gateway.user.schemas import (
    SetUsernameRequest,
    UsernameAvailabilityResponse,
    UsernameResponse,
)
from src.pm_gateway.user.service import UserService

router = APIRouter(tags=["users"])
_service = UserService()


@router.get("/users/{address}/username")
async def get_username(
    address: str,
    request: Request,
    db: DbSession,
) -> ApiResponse:
    addr = normalize_address(address)
    username = await _service.get_username(db, addr)
    return success_response(UsernameResponse(address=addr, username=username).model_dump(), request)


@router.put("/users/me/username")
async def set_username(
    body: SetUsernameRequest,
    request: Request,
    caller: CurrentCaller,
    db: DbSession,
) -> ApiResponse:
    result = await _service.set_username(db, caller.address, body.username)
    return success_response(result.model_dump(), request)


@router.get("/usernames/{username}/availability")
async def username_availability(
    username: str,
    request: Request,
    db: DbSession,
) -> ApiResponse:
    available = await _service.is_username_available(db, username)
    data = UsernameAvailabilityResponse(username=username, available=available)
    return success_response(data.model_dump(), request)
