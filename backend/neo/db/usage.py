"""Database queries for the credit limiter."""

import datetime

from sqlalchemy import or_
from sqlalchemy import select
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from neo.db.models import Usage


def get_usage_row(key: str, db_session: Session) -> Usage | None:
    return db_session.get(Usage, key, populate_existing=True)


def increment_usage_points(
    key: str,
    points: int,
    now: datetime.datetime,
    window_end: datetime.datetime,
    db_session: Session,
) -> Usage:
    """
    Atomically add points to the key's live window, or open a new window ending
    at `window_end` when there is none.

    The addition happens in SQL so concurrent requests never overwrite each
    other's consumption. Commits the session.
    """
    increment = (
        update(Usage)
        .where(Usage.key == key, Usage.expire > now)
        .values(points=Usage.points + points)
        .execution_options(synchronize_session=False)
    )
    if db_session.execute(increment).rowcount == 0:
        reset = (
            update(Usage)
            .where(Usage.key == key, or_(Usage.expire.is_(None), Usage.expire <= now))
            .values(points=points, expire=window_end)
            .execution_options(synchronize_session=False)
        )
        if db_session.execute(reset).rowcount == 0:
            try:
                db_session.add(Usage(key=key, points=points, expire=window_end))
                db_session.commit()
            except IntegrityError:
                # Another request opened the window first
                db_session.rollback()
                db_session.execute(increment)
    db_session.commit()

    return db_session.execute(
        select(Usage).where(Usage.key == key).execution_options(populate_existing=True)
    ).scalar_one()
