"""Pydantic request/response schemas for pm_gateway.

All responses are wrapped in ApiResponse[T] at the router layer.
"""

from pydantic import BaseModel


class RefreshRequest(BaseModel):
    refresh_token: str


class RefreshResponse(BaseModel):
    access_token: str
    expires_in: int = 1800


class SetUsernameRequest(BaseModel):
    # Shape is checked by the service so a bad name reports InvalidUsername (1004)
    username: str


class UsernameResponse(BaseModel):
    address: str
    username: str


class SetUsernameResponse(BaseModel):
    address: str
    username: str
    previous_username: str | None
    fee_paid_cents: int


class UsernameAvailabilityResponse(BaseModel):
    username: str
    available: bool
