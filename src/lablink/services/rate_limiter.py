"""Fixed-window rate limiting backed by the ``rate_limits`` table.

Keeping the counters in the database means every worker process sees the
same budget.  Database errors fail open: the request is allowed and the
error is logged.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lablink.domain.models import RateLimit
from lablink.services.errors import RateLimitExceededError

logger = logging.getLogger(__name__)

MINUTE = timedelta(minutes=1)
HOUR = timedelta(hours=1)


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: datetime
    retry_after: Optional[int] = None


def _utcnow() -> datetime:
    # Stored naive; SQLite DateTime columns drop tzinfo
    return datetime.now(timezone.utc).replace(tzinfo=None)


async def check_rate_limit(
    session: AsyncSession,
    identifier: str,
    endpoint: str,
    max_requests: int,
    window: timedelta,
    now: Optional[datetime] = None,
) -> RateLimitResult:
    """Count one request for ``identifier`` on ``endpoint``.

    Returns a result with ``allowed=False`` (and nothing counted) when the
    current window already holds ``max_requests`` requests.
    """
    now = now or _utcnow()
    window_floor = now - window

    try:
        result = await session.execute(
            select(RateLimit)
            .where(
                RateLimit.identifier == identifier,
                RateLimit.endpoint == endpoint,
                RateLimit.window_start >= window_floor,
            )
            .order_by(RateLimit.window_start.desc())
            .limit(1)
        )
        record = result.scalar_one_or_none()

        current = record.request_count if record else 0
        reset_at = (record.window_start if record else now) + window

        if current >= max_requests:
            retry_after = max(math.ceil((reset_at - now).total_seconds()), 0)
            logger.warning(
                "Rate limit exceeded for %s on %s (%d/%d, retry in %ds)",
                identifier[:50],
                endpoint,
                current,
                max_requests,
                retry_after,
            )
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_at=reset_at,
                retry_after=retry_after,
            )

        if record:
            record.request_count = current + 1
        else:
            session.add(
                RateLimit(
                    id=str(uuid.uuid4()),
                    identifier=identifier,
                    endpoint=endpoint,
                    request_count=1,
                    window_start=now,
                )
            )
        await session.commit()

        return RateLimitResult(
            allowed=True,
            remaining=max_requests - current - 1,
            reset_at=reset_at,
        )

    except SQLAlchemyError as exc:
        logger.error("Rate limit check failed for %s: %s", endpoint, exc)
        await session.rollback()
        return RateLimitResult(allowed=True, remaining=max_requests, reset_at=now + window)


async def enforce_rate_limit(
    session: AsyncSession,
    identifier: str,
    endpoint: str,
    max_requests: int,
    window: timedelta,
) -> RateLimitResult:
    """Like ``check_rate_limit`` but raises when the request is refused.

    Raises:
        RateLimitExceededError: With ``reset_at`` and ``retry_after`` set.
    """
    result = await check_rate_limit(session, identifier, endpoint, max_requests, window)
    if not result.allowed:
        raise RateLimitExceededError(
            f"Rate limit exceeded. Maximum {max_requests} requests per "
            f"{_describe(window)}. Try again at {result.reset_at.isoformat()}",
            reset_at=result.reset_at,
            retry_after=result.retry_after or 0,
        )
    return result


def _describe(window: timedelta) -> str:
    if window == MINUTE:
        return "minute"
    if window == HOUR:
        return "hour"
    return f"{int(window.total_seconds())} seconds"


def client_identifier(user_id: Optional[str], headers) -> str:
    """User id when known, else the first forwarded client IP."""
    if user_id:
        return user_id
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return headers.get("x-real-ip") or headers.get("cf-connecting-ip") or "unknown"
