"""State-machine guards for the market ledger.

Pure functions over the domain models. Repositories call these after taking
the market row lock, so a guard and the write it protects see the same state.

    ACTIVE ──resolve──▶ RESOLVED
       └────cancel───▶ CANCELLED

Terminal states never transition again.
"""

from datetime import datetime

from src.pm_common.cents import validate_amount
from src.pm_common.enums import MarketStatus
from src.pm_common.errors import (
    AlreadyResolvedError,
    InvalidMarketParamsError,
    MarketExpiredError,
    MarketNotActiveError,
    MarketNotEndedError,
)
from src.pm_market.domain.models import Market, NewMarket

MAX_QUESTION_LENGTH = 500


def check_new_market(new: NewMarket, now: datetime) -> None:
    if not new.question or not new.question.strip():
        raise InvalidMarketParamsError("question cannot be empty")
    if len(new.question) > MAX_QUESTION_LENGTH:
        raise InvalidMarketParamsError(
            f"question longer than {MAX_QUESTION_LENGTH} characters"
        )
    if new.end_time <= now:
        raise InvalidMarketParamsError("end time must be in the future")


def check_can_stake(market: Market, amount: int, now: datetime) -> None:
    validate_amount(amount)
    if market.status != MarketStatus.ACTIVE:
        raise MarketNotActiveError(market.id, market.status)
    if now >= market.end_time:
        raise MarketExpiredError(market.id)


def check_can_resolve(market: Market, now: datetime) -> None:
    if market.status == MarketStatus.RESOLVED:
        raise AlreadyResolvedError(market.id)
    if market.status != MarketStatus.ACTIVE:
        raise MarketNotActiveError(market.id, market.status)
    if now < market.end_time:
        raise MarketNotEndedError(market.id)


def check_can_cancel(market: Market) -> None:
    if market.status == MarketStatus.RESOLVED:
        raise AlreadyResolvedError(market.id)
    if market.status != MarketStatus.ACTIVE:
        raise MarketNotActiveError(market.id, market.status)
