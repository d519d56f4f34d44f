"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Account / funds movement
  3xxx: Market ledger
  4xxx: Settlement
  9xxx: System

Every error here is terminal for the request: nothing is retried internally.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/User ---

class UnauthorizedError(AppError):
    def __init__(self, detail: str = "Caller lacks the required capability") -> None:
        super().__init__(1001, detail, 403)


class InvalidAddressError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(1002, f"Invalid address: {address}", 422)


class UsernameTakenError(AppError):
    def __init__(self, username: str) -> None:
        super().__init__(1003, f"Username already taken: {username}", 409)


class InvalidUsernameError(AppError):
    def __init__(self, username: str) -> None:
        super().__init__(
            1004,
            f"Invalid username {username!r}: 3-20 chars of letters, digits, underscore",
            422,
        )


class UsernameNotSetError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(1005, f"No username registered for {address}", 404)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Invalid or expired token", 401)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1007, "Refresh token is invalid or expired", 401)


# --- 2xxx: Account ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required} cents, available {available} cents",
            422,
        )


class AccountNotFoundError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(2002, f"Account not found for {address}", 404)


class TransferFailedError(AppError):
    def __init__(self, address: str, amount: int) -> None:
        super().__init__(
            2003, f"Transfer of {amount} cents to {address} failed; nothing was applied", 502
        )


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketNotActiveError(AppError):
    def __init__(self, market_id: int, status: str | None = None) -> None:
        detail = f"Market is not active: {market_id}"
        if status is not None:
            detail += f" (status={status})"
        super().__init__(3002, detail, 422)


class MarketExpiredError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(3003, f"Market trading window has closed: {market_id}", 422)


class MarketNotEndedError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(3004, f"Market has not ended yet: {market_id}", 422)


class AlreadyResolvedError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(3005, f"Market already resolved: {market_id}", 409)


class InvalidAmountError(AppError):
    def __init__(self, amount: int) -> None:
        super().__init__(3006, f"Invalid amount: {amount}", 422)


class InvalidMarketParamsError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3007, f"Invalid market parameters: {detail}", 422)


# --- 4xxx: Settlement ---

class NotAWinnerError(AppError):
    def __init__(self, market_id: int, address: str) -> None:
        super().__init__(4001, f"{address} has no winning stake in market {market_id}", 422)


class AlreadyClaimedError(AppError):
    def __init__(self, market_id: int, address: str) -> None:
        super().__init__(4002, f"{address} already claimed in market {market_id}", 409)


class NotMarketCreatorError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(4003, f"Caller is not the creator of market {market_id}", 403)


class CreatorFeeAlreadyClaimedError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(4004, f"Creator fee already claimed for market {market_id}", 409)


class NoCreatorFeeToClaimError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(4005, f"No creator fee to claim for market {market_id}", 422)


class InvalidFeePercentageError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4006, f"Invalid fee percentage: {detail}", 422)


class MarketNotCancelledError(AppError):
    def __init__(self, market_id: int) -> None:
        super().__init__(4007, f"Market is not cancelled: {market_id}", 422)


class NothingToRefundError(AppError):
    def __init__(self, market_id: int, address: str) -> None:
        super().__init__(4008, f"{address} has no stake to refund in market {market_id}", 422)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
