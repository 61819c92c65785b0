from collections.abc import Generator
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from neo import config
from neo.db.models import Base

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        # An in-memory database only exists on a single connection
        if ":memory:" in url or url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine(config.DATABASE_URL)
    return _engine


def set_engine(engine: Engine | None) -> None:
    """Swap the process engine (used by tests and alternate entrypoints)."""
    global _engine, _session_factory
    _engine = engine
    _session_factory = None


def _get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory


def init_db() -> None:
    Base.metadata.create_all(get_engine())


@contextmanager
def get_session() -> Iterator[Session]:
    session = _get_session_factory()()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db_session() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    with get_session() as session:
        yield session
