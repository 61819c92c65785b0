from collections.abc import Generator

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from neo.auth import CurrentUser
from neo.db.engine import build_engine
from neo.db.engine import get_session
from neo.db.engine import set_engine
from neo.db.models import Base


@pytest.fixture
def db_engine() -> Generator[Engine, None, None]:
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    set_engine(engine)
    yield engine
    set_engine(None)
    engine.dispose()


@pytest.fixture
def db_session(db_engine: Engine) -> Generator[Session, None, None]:
    with get_session() as session:
        yield session


@pytest.fixture
def free_user() -> CurrentUser:
    return CurrentUser(id="user_free", name="Free User", plan="hobby")


@pytest.fixture
def pro_user() -> CurrentUser:
    return CurrentUser(id="user_pro", name="Pro User", plan="pro")
