"""Wallet cash endpoints: balance, deposit, withdraw, ledger. All require a bearer token."""

from fastapi import APIRouter, Query, Request

from src.pm_account.application.schemas import DepositRequest, WithdrawRequest
from src.pm_account.application.service import AccountApplicationService
from src.pm_common.database import DbSession
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import CurrentCaller

router = APIRouter(prefix="/account", tags=["account"])

_service = AccountApplicationService()


@router.get("/balance")
async def get_balance(
    caller: CurrentCaller,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, caller.address)
    return success_response(data.model_dump(), request)


@router.post("/deposit")
async def deposit(
    body: DepositRequest,
    caller: CurrentCaller,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _service.deposit(db, caller.address, body.amount_cents)
    return success_response(data.model_dump(), request)


@router.post("/withdraw")
async def withdraw(
    body: WithdrawRequest,
    caller: CurrentCaller,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _service.withdraw(db, caller.address, body.amount_cents)
    return success_response(data.model_dump(), request)


@router.get("/ledger")
async def list_ledger(
    caller: CurrentCaller,
    db: DbSession,
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    entry_type: str | None = Query(None, description="Filter by LedgerEntryType"),
    market_id: int | None = Query(None, description="Only movements for this market"),
) -> ApiResponse:
    data = await _service.list_ledger(
        db, caller.address, cursor, limit, entry_type, market_id=market_id
    )
    return success_response(data.model_dump(), request)
