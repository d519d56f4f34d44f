"""User-facing gateway service: token refresh and the username registry.

Setting a username for the first time is free. Changing it later costs
platform_config.username_change_fee, moved from the user's account to the
PLATFORM_FEE account in the same transaction as the rename.
"""

import logging
import re

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_common.address import PLATFORM_FEE_ACCOUNT
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import LedgerEntryType
from src.pm_common.errors import (
    InvalidUsernameError,
    UsernameNotSetError,
    UsernameTakenError,
)
from src.pm_common.platform_config import PlatformConfigRepository
from src.pm_gateway.auth.jwt_handler import REFRESH, address_from_token, create_access_token
from src.pm_gateway.user.db_models import UsernameModel
from src.pm_gateway.user.schemas import SetUsernameResponse

logger = logging.getLogger(__name__)

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_]{3,20}$")


def validate_username(username: str) -> str:
    if not _USERNAME_RE.match(username):
        raise InvalidUsernameError(username)
    return username


class UserService:
    """Stateless; instantiate once, reuse across requests."""

    def __init__(
        self,
        account_repo: AccountRepositoryProtocol | None = None,
        config_repo: PlatformConfigRepository | None = None,
    ) -> None:
        self._accounts: AccountRepositoryProtocol = account_repo or AccountRepository()
        self._config = config_repo or PlatformConfigRepository()

    async def refresh(self, refresh_token: str) -> str:
        """Validate refresh token and return a new access token for the same address."""
        address = address_from_token(refresh_token, REFRESH)
        return create_access_token(address)

    async def get_username(self, db: AsyncSession, address: str) -> str:
        row = await db.get(UsernameModel, address)
        if row is None:
            raise UsernameNotSetError(address)
        return row.username

    async def is_username_available(self, db: AsyncSession, username: str) -> bool:
        validate_username(username)
        result = await db.execute(
            select(UsernameModel.address).where(
                UsernameModel.username_lower == username.lower()
            )
        )
        return result.scalar_one_or_none() is None

    async def set_username(
        self, db: AsyncSession, address: str, username: str
    ) -> SetUsernameResponse:
        validate_username(username)
        lowered = username.lower()
        fee = 0
        previous: str | None = None
        try:
            result = await db.execute(
                select(UsernameModel).where(UsernameModel.username_lower == lowered)
            )
            holder = result.scalar_one_or_none()
            if holder is not None and holder.address != address:
                raise UsernameTakenError(username)

            current = await db.get(UsernameModel, address)
            if current is not None and current.username == username:
                # Re-submitting the held name is a no-op, not a paid change
                return SetUsernameResponse(
                    address=address, username=username,
                    previous_username=username, fee_paid_cents=0,
                )
            if current is None:
                db.add(UsernameModel(address=address, username=username, username_lower=lowered))
            else:
                previous = current.username
                config = await self._config.get_config(db)
                fee = config.username_change_fee
                if fee > 0:
                    await self._accounts.debit(
                        db, address, fee, LedgerEntryType.USERNAME_CHANGE_FEE,
                        "USERNAME", address, "Username change fee",
                    )
                    await self._accounts.credit(
                        db, PLATFORM_FEE_ACCOUNT, fee, LedgerEntryType.FEE_REVENUE,
                        "USERNAME", address, "Username change fee",
                    )
                current.username = username
                current.username_lower = lowered
                current.change_count += 1
                current.updated_at = utc_now()
            await db.flush()
            await db.commit()
        except IntegrityError:
            # Lost a race for the same name against another address
            await db.rollback()
            raise UsernameTakenError(username) from None
        except Exception:
            await db.rollback()
            raise
        logger.info("Username set: %s -> %s (fee=%d)", address, username, fee)
        return SetUsernameResponse(
            address=address, username=username, previous_username=previous, fee_paid_cents=fee
        )
