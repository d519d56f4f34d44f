# src/pm_admin/api/router.py
"""Admin REST API. Every endpoint requires the admin/resolver capability."""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from src.pm_admin.application.service import AdminService
from src.pm_common.database import DbSession
from src.pm_common.enums import Side
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import AdminCaller

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


class ResolveRequest(BaseModel):
    outcome: Side


class FeePctRequest(BaseModel):
    pct: int


class FeeAmountRequest(BaseModel):
    amount_cents: int


@router.post("/markets/{market_id}/resolve")
async def resolve_market(
    market_id: int,
    body: ResolveRequest,
    request: Request,
    caller: AdminCaller,
    db: DbSession,
) -> ApiResponse:
    result = await _service.resolve_market(db, caller, market_id, body.outcome)
    return success_response(result.model_dump(), request)


@router.post("/markets/{market_id}/cancel")
async def cancel_market(
    market_id: int,
    request: Request,
    caller: AdminCaller,
    db: DbSession,
) -> ApiResponse:
    result = await _service.cancel_market(db, caller, market_id)
    return success_response(result.model_dump(), request)


@router.get("/fees")
async def get_fees(
    request: Request,
    caller: AdminCaller,
    db: DbSession,
) -> ApiResponse:
    return success_response(await _service.get_fees(db), request)


@router.put("/fees/creator")
async def update_creator_fee(
    body: FeePctRequest,
    request: Request,
    caller: AdminCaller,
    db: DbSession,
) -> ApiResponse:
    result = await _service.update_creator_fee_pct(db, caller, body.pct)
    return success_response(result, request)


@router.put("/fees/platform")
async def update_platform_fee(
    body: FeePctRequest,
    request: Request,
    caller: AdminCaller,
    db: DbSession,
) -> ApiResponse:
    result = await _service.update_platform_fee_pct(db, caller, body.pct)
    return success_response(result, request)


@router.put("/fees/market-creation")
async def update_market_creation_fee(
    body: FeeAmountRequest,
    request: Request,
    caller: AdminCaller,
    db: DbSession,
) -> ApiResponse:
    result = await _service.update_market_creation_fee(db, caller, body.amount_cents)
    return success_response(result, request)


@router.put("/fees/username-change")
async def update_username_change_fee(
    body: FeeAmountRequest,
    request: Request,
    caller: AdminCaller,
    db: DbSession,
) -> ApiResponse:
    result = await _service.update_username_change_fee(db, caller, body.amount_cents)
    return success_response(result, request)


@router.get("/stats")
async def get_stats(
    request: Request,
    caller: AdminCaller,
    db: DbSession,
) -> ApiResponse:
    return success_response(await _service.get_platform_stats(db), request)


@router.get("/invariants")
async def verify_invariants(
    request: Request,
    caller: AdminCaller,
    db: DbSession,
) -> ApiResponse:
    return success_response(await _service.verify_all_invariants(db, caller), request)
