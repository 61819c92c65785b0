import datetime

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from neo import config
from neo.auth import CurrentUser
from neo.db.engine import get_session
from neo.db.models import Usage
from neo.db.usage import get_usage_row
from neo.usage import RateLimitExceeded
from neo.usage import UsageTracker
from neo.usage import consume_credits
from neo.usage import get_usage_status
from neo.usage import get_usage_tracker


def test_first_consumption_opens_window(db_session: Session) -> None:
    tracker = UsageTracker(db_session, points=5, duration_seconds=60)
    result = tracker.consume("user_1")

    assert result.consumed_points == 1
    assert result.remaining_points == 4
    assert 0 < result.ms_before_next <= 60_000
    assert get_usage_row("user_1", db_session).points == 1


def test_consumption_accumulates_within_window(db_session: Session) -> None:
    tracker = UsageTracker(db_session, points=5, duration_seconds=60)
    tracker.consume("user_1")
    tracker.consume("user_1", points=2)
    result = tracker.get("user_1")

    assert result is not None
    assert result.consumed_points == 3
    assert result.remaining_points == 2


def test_exceeding_limit_raises_and_records(db_session: Session) -> None:
    tracker = UsageTracker(db_session, points=2, duration_seconds=60)
    tracker.consume("user_1")
    tracker.consume("user_1")

    with pytest.raises(RateLimitExceeded) as exc_info:
        tracker.consume("user_1")

    assert str(exc_info.value) == "You have run out of credits"
    assert exc_info.value.result.remaining_points == 0
    assert exc_info.value.result.ms_before_next > 0
    assert get_usage_row("user_1", db_session).points == 3


def test_expired_window_resets(db_session: Session) -> None:
    past = datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(seconds=1)
    db_session.add(Usage(key="user_1", points=5, expire=past))
    db_session.commit()
    tracker = UsageTracker(db_session, points=5, duration_seconds=60)

    assert tracker.get("user_1") is None
    result = tracker.consume("user_1")
    assert result.consumed_points == 1
    assert get_usage_row("user_1", db_session).points == 1


def test_sessions_sharing_a_key_do_not_lose_consumption(db_engine: Engine) -> None:
    with get_session() as first, get_session() as second:
        tracker_a = UsageTracker(first, points=5, duration_seconds=60)
        tracker_b = UsageTracker(second, points=5, duration_seconds=60)

        tracker_a.consume("user_1")
        tracker_b.consume("user_1")
        result = tracker_a.consume("user_1")

        assert result.consumed_points == 3
        assert tracker_b.get("user_1").consumed_points == 3


def test_row_without_expiry_opens_new_window(db_session: Session) -> None:
    db_session.add(Usage(key="user_1", points=4, expire=None))
    db_session.commit()
    tracker = UsageTracker(db_session, points=5, duration_seconds=60)

    result = tracker.consume("user_1")
    assert result.consumed_points == 1
    assert result.ms_before_next > 0


def test_keys_are_independent(db_session: Session) -> None:
    tracker = UsageTracker(db_session, points=1, duration_seconds=60)
    tracker.consume("user_1")
    assert tracker.consume("user_2").consumed_points == 1


def test_plan_selects_allowance(
    db_session: Session, free_user: CurrentUser, pro_user: CurrentUser
) -> None:
    assert get_usage_tracker(free_user, db_session).points == config.FREE_POINTS
    assert get_usage_tracker(pro_user, db_session).points == config.PRO_POINTS


def test_consume_credits_and_status(db_session: Session, free_user: CurrentUser) -> None:
    assert get_usage_status(free_user, db_session) is None

    consume_credits(free_user, db_session)
    status = get_usage_status(free_user, db_session)

    assert status is not None
    assert status.consumed_points == config.GENERATION_COST
    assert status.remaining_points == config.FREE_POINTS - config.GENERATION_COST
