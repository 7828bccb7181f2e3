"""
Ticket token generation.

Tokens look like ``20260208-A3K9M2``: the UTC date plus a random suffix from
an alphabet without 0, O, I and 1. Uniqueness per tenant is checked against
stored jobs here and enforced for real by the tenant token constraint.
"""

import logging
import secrets
import time
from datetime import datetime, timezone
from uuid import UUID

from washq.config import get_settings
from washq.constants import (
    TOKEN_ALPHABET,
    TOKEN_DATE_FORMAT,
    TOKEN_FALLBACK_SUFFIX_LENGTH,
    TOKEN_SUFFIX_LENGTH,
)
from washq.db.repository import JobRepository

logger = logging.getLogger(__name__)

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def random_suffix(length: int = TOKEN_SUFFIX_LENGTH) -> str:
    """Draw `length` characters from the token alphabet."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def fallback_token(date_prefix: str, now_ms: int | None = None) -> str:
    """
    Build a token from the clock when random draws keep colliding.

    Only unique to timestamp resolution; the insert constraint still guards it.
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    stamp = to_base36(now_ms)[-4:]
    return f"{date_prefix}-{stamp}{random_suffix(TOKEN_FALLBACK_SUFFIX_LENGTH)}"


async def generate_token_number(
    jobs: JobRepository,
    tenant_id: UUID,
    now: datetime | None = None,
    max_draws: int | None = None,
) -> str:
    """
    Generate a token number not yet used by the tenant.

    Args:
        jobs: Job lookups used to detect collisions.
        tenant_id: The tenant identifier.
        now: Clock override, defaults to the current UTC time.
        max_draws: Random draws before falling back to a timestamp token.

    Returns:
        The token string.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if max_draws is None:
        max_draws = get_settings().token_max_draws

    date_prefix = now.astimezone(timezone.utc).strftime(TOKEN_DATE_FORMAT)

    for _ in range(max_draws):
        candidate = f"{date_prefix}-{random_suffix()}"
        if await jobs.find_by_token(tenant_id, candidate) is None:
            return candidate

    logger.warning(
        "No free token after random draws, using timestamp fallback",
        extra={"tenant_id": str(tenant_id), "draws": max_draws},
    )
    return fallback_token(date_prefix)
