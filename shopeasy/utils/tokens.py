# shopeasy/utils/tokens.py
"""
Generation of the single-use secrets used by the account workflows.

Everything here is a pure function of the secure random source (and, for order
numbers, the supplied clock reading); nothing is persisted.
"""

import hashlib
import re
import secrets
from datetime import datetime

RESET_TOKEN_BYTES = 32
RESET_TOKEN_PATTERN = re.compile(r"^[a-f0-9]{64}$")
ORDER_NUMBER_PATTERN = re.compile(r"^ORD-\d{8}-\d{5}$")


def issue_otp() -> str:
    """Return a 6-digit numeric code drawn uniformly from [100000, 999999]."""
    return str(100000 + secrets.randbelow(900000))


def issue_reset_token() -> str:
    """Return 256 bits of randomness as 64 lowercase hex characters."""
    return secrets.token_hex(RESET_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """One-way digest stored in place of a raw reset token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def is_reset_token_format(token: str) -> bool:
    return bool(token) and RESET_TOKEN_PATTERN.match(token) is not None


def generate_order_number(now: datetime) -> str:
    """ORD-YYYYMMDD-NNNNN, NNNNN in [10000, 99999]."""
    return f"ORD-{now.strftime('%Y%m%d')}-{10000 + secrets.randbelow(90000)}"
