"""Token and address helpers for integration tests."""

import secrets

from src.pm_gateway.auth.jwt_handler import create_access_token

# Matches ADMIN_ADDRESSES set in tests/conftest.py
ADMIN_ADDRESS = "0xad00000000000000000000000000000000000001"


def random_address() -> str:
    return "0x" + secrets.token_hex(20)


def bearer(address: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(address)}"}
