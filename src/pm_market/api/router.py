"""pm_market REST endpoints (Market Ledger).

GET  /markets                                     list with cursor pagination
POST /markets                                     create (pays the creation fee)
GET  /markets/{market_id}                         full detail
POST /markets/{market_id}/stakes                  buy shares on one side
GET  /markets/{market_id}/participations/{addr}   one user's stake record
GET  /markets/{market_id}/events                  event log, oldest first
"""

from fastapi import APIRouter, Query, Request, status

from src.pm_common.address import normalize_address
from src.pm_common.database import DbSession
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import CurrentCaller
from src.pm_market.application.schemas import CreateMarketRequest, StakeRequest
from src.pm_market.application.service import MarketApplicationService

router = APIRouter(prefix="/markets", tags=["markets"])

_service = MarketApplicationService()


@router.get("")
async def list_markets(
    request: Request,
    db: DbSession,
    status: str | None = Query(
        None, description="Filter by status. Default: ACTIVE. Use ALL for no filter."
    ),
    category: str | None = Query(None),
    creator: str | None = Query(None, description="Only markets created by this address"),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    creator_addr = normalize_address(creator) if creator else None
    result = await _service.list_markets(db, status, category, creator_addr, cursor, limit)
    return success_response(result.model_dump(), request)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_market(
    body: CreateMarketRequest,
    request: Request,
    caller: CurrentCaller,
    db: DbSession,
) -> ApiResponse:
    result = await _service.create_market(db, caller.address, body)
    return success_response(result.model_dump(), request, message="Market created")


@router.get("/{market_id}")
async def get_market(
    market_id: int,
    request: Request,
    db: DbSession,
) -> ApiResponse:
    result = await _service.get_market(db, market_id)
    return success_response(result.model_dump(), request)


@router.post("/{market_id}/stakes")
async def buy_shares(
    market_id: int,
    body: StakeRequest,
    request: Request,
    caller: CurrentCaller,
    db: DbSession,
) -> ApiResponse:
    result = await _service.buy_shares(
        db, market_id, caller.address, body.side, body.amount_cents
    )
    return success_response(result.model_dump(), request)


@router.get("/{market_id}/participations/{address}")
async def get_participation(
    market_id: int,
    address: str,
    request: Request,
    db: DbSession,
) -> ApiResponse:
    result = await _service.get_participation(db, market_id, normalize_address(address))
    return success_response(result.model_dump(), request)


@router.get("/{market_id}/events")
async def list_events(
    market_id: int,
    request: Request,
    db: DbSession,
    event_type: str | None = Query(None, description="Filter by event type, e.g. StakeRecorded"),
    limit: int = Query(50, ge=1, le=200),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_events(db, market_id, cursor, limit, event_type)
    return success_response(result.model_dump(), request)
