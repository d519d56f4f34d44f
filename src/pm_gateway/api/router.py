"""Auth API router: refresh.

Access and refresh tokens are issued by the wallet/session provider that
shares JWT_SECRET with this service; here they are only exchanged.

All endpoints return ApiResponse[T]. request_id is read from
request.state (injected by RequestLogMiddleware).
"""

from fastapi import APIRouter, Request, status

from config.settings import settings
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.user.schemas import RefreshRequest, RefreshResponse
from src.pm_gateway.user.service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
_service = UserService()


@router.post(
    "/refresh",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Refresh access token",
)
async def refresh_token(
    request: Request,
    body: RefreshRequest,
) -> ApiResponse:
    new_access_token = await _service.refresh(body.refresh_token)

    data = RefreshResponse(
        access_token=new_access_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
    )
    return success_response(data.model_dump(), request, message="Token refreshed")
