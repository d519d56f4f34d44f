"""Settlement REST endpoints, mounted under /markets alongside the ledger.

GET  /markets/{market_id}/preview                 potential payout for a stake
GET  /markets/{market_id}/winnings/{address}      winnings breakdown
POST /markets/{market_id}/claim                   claim winnings
GET  /markets/{market_id}/creator-fee             creator fee info
POST /markets/{market_id}/creator-fee/claim       creator claims the fee
POST /markets/{market_id}/refund                  refund from a cancelled market
"""

from fastapi import APIRouter, Query, Request

from src.pm_clearing.application.service import SettlementService
from src.pm_common.address import normalize_address
from src.pm_common.database import DbSession
from src.pm_common.enums import Side
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import CurrentCaller

router = APIRouter(prefix="/markets", tags=["settlement"])

_service = SettlementService()


@router.get("/{market_id}/preview")
async def preview_payout(
    market_id: int,
    request: Request,
    db: DbSession,
    side: Side = Query(...),
    amount_cents: int = Query(..., description="Hypothetical stake in cents"),
    address: str | None = Query(None, description="Include this address's existing stake"),
) -> ApiResponse:
    addr = normalize_address(address) if address else None
    result = await _service.preview(db, market_id, side, amount_cents, addr)
    return success_response(result.model_dump(), request)


@router.get("/{market_id}/winnings/{address}")
async def get_winnings(
    market_id: int,
    address: str,
    request: Request,
    db: DbSession,
) -> ApiResponse:
    result = await _service.get_winnings(db, market_id, normalize_address(address))
    return success_response(result.model_dump(), request)


@router.post("/{market_id}/claim")
async def claim_winnings(
    market_id: int,
    request: Request,
    caller: CurrentCaller,
    db: DbSession,
) -> ApiResponse:
    result = await _service.claim_winnings(db, market_id, caller.address)
    return success_response(result.model_dump(), request)


@router.get("/{market_id}/creator-fee")
async def get_creator_fee(
    market_id: int,
    request: Request,
    db: DbSession,
) -> ApiResponse:
    result = await _service.get_creator_fee_info(db, market_id)
    return success_response(result.model_dump(), request)


@router.post("/{market_id}/creator-fee/claim")
async def claim_creator_fee(
    market_id: int,
    request: Request,
    caller: CurrentCaller,
    db: DbSession,
) -> ApiResponse:
    result = await _service.claim_creator_fee(db, market_id, caller.address)
    return success_response(result.model_dump(), request)


@router.post("/{market_id}/refund")
async def claim_refund(
    market_id: int,
    request: Request,
    caller: CurrentCaller,
    db: DbSession,
) -> ApiResponse:
    result = await _service.claim_refund(db, market_id, caller.address)
    return success_response(result.model_dump(), request)
