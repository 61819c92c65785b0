"""Credit accounting for generations.

Each user gets a fixed window of points (FREE_POINTS, or PRO_POINTS on the pro
plan) that resets USAGE_DURATION_SECONDS after the first consumption in the
window. Every generation costs GENERATION_COST points.
"""

import datetime
import logging

from pydantic import BaseModel
from sqlalchemy.orm import Session

from neo import config
from neo.auth import CurrentUser
from neo.db.usage import get_usage_row
from neo.db.usage import increment_usage_points

logger = logging.getLogger("neo.usage")


class RateLimiterResult(BaseModel):
    consumed_points: int
    remaining_points: int
    ms_before_next: int


class RateLimitExceeded(Exception):
    def __init__(self, result: RateLimiterResult) -> None:
        super().__init__("You have run out of credits")
        self.result = result


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _as_aware(value: datetime.datetime) -> datetime.datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


class UsageTracker:
    """Fixed-window point limiter backed by the `usage` table."""

    def __init__(self, db_session: Session, points: int, duration_seconds: int) -> None:
        self.db_session = db_session
        self.points = points
        self.duration_seconds = duration_seconds

    def _result(self, consumed: int, expire: datetime.datetime | None) -> RateLimiterResult:
        ms_before_next = 0
        if expire is not None:
            ms_before_next = max(0, int((expire - _now()).total_seconds() * 1000))
        return RateLimiterResult(
            consumed_points=consumed,
            remaining_points=max(0, self.points - consumed),
            ms_before_next=ms_before_next,
        )

    def consume(self, key: str, points: int = 1) -> RateLimiterResult:
        now = _now()
        window_end = now + datetime.timedelta(seconds=self.duration_seconds)
        # Consumption is recorded even when it goes over the limit
        row = increment_usage_points(key, points, now, window_end, self.db_session)
        consumed = row.points
        expire = _as_aware(row.expire) if row.expire is not None else window_end

        result = self._result(consumed, expire)
        if consumed > self.points:
            logger.info("usage[%s] limit reached consumed=%d", key, consumed)
            raise RateLimitExceeded(result)
        return result

    def get(self, key: str) -> RateLimiterResult | None:
        row = get_usage_row(key, self.db_session)
        if row is None or row.expire is None or _as_aware(row.expire) <= _now():
            return None
        return self._result(row.points, _as_aware(row.expire))


def get_usage_tracker(user: CurrentUser, db_session: Session) -> UsageTracker:
    return UsageTracker(
        db_session,
        points=config.PRO_POINTS if user.has_pro_access else config.FREE_POINTS,
        duration_seconds=config.USAGE_DURATION_SECONDS,
    )


def consume_credits(user: CurrentUser, db_session: Session) -> RateLimiterResult:
    tracker = get_usage_tracker(user, db_session)
    return tracker.consume(user.id, config.GENERATION_COST)


def get_usage_status(user: CurrentUser, db_session: Session) -> RateLimiterResult | None:
    tracker = get_usage_tracker(user, db_session)
    return tracker.get(user.id)
