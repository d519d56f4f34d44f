"""Wallet address helpers.

The wallet/session provider hands us addresses; we only check their shape
and normalize case so that one wallet maps to exactly one row everywhere.
"""

import re

from src.pm_common.errors import InvalidAddressError

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

# System accounts live in the same accounts table but are never valid wallets.
PLATFORM_FEE_ACCOUNT = "PLATFORM_FEE"


def normalize_address(address: str) -> str:
    if not _ADDRESS_RE.match(address):
        raise InvalidAddressError(address)
    return address.lower()


def is_address(address: str) -> bool:
    return bool(_ADDRESS_RE.match(address))
