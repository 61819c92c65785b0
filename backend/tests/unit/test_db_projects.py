import uuid

from sqlalchemy.orm import Session

from neo.db.models import MessageRole
from neo.db.models import MessageType
from neo.db.projects import create_error_message
from neo.db.projects import create_project
from neo.db.projects import create_result_message
from neo.db.projects import create_user_message
from neo.db.projects import get_fragment
from neo.db.projects import get_project
from neo.db.projects import get_project_messages
from neo.db.projects import get_recent_messages
from neo.db.projects import get_user_projects


def test_create_project_adds_opening_message(db_session: Session) -> None:
    project = create_project("user_1", "swift-otter", "Build a todo app", db_session)

    messages = get_project_messages(project.id, db_session)
    assert len(messages) == 1
    assert messages[0].content == "Build a todo app"
    assert messages[0].role == MessageRole.USER
    assert messages[0].type == MessageType.RESULT


def test_get_project_checks_owner(db_session: Session) -> None:
    project = create_project("user_1", "swift-otter", "hello", db_session)

    assert get_project(project.id, "user_1", db_session) is not None
    assert get_project(project.id, "user_2", db_session) is None
    assert get_project(uuid.uuid4(), "user_1", db_session) is None
    assert [p.id for p in get_user_projects("user_1", db_session)] == [project.id]
    assert get_user_projects("user_2", db_session) == []


def test_recent_messages_newest_first(db_session: Session) -> None:
    project = create_project("user_1", "swift-otter", "m0", db_session)
    for i in range(1, 7):
        create_user_message(project.id, f"m{i}", db_session)

    recent = get_recent_messages(project.id, 5, db_session)
    assert [m.content for m in recent] == ["m6", "m5", "m4", "m3", "m2"]


def test_result_message_carries_fragment(db_session: Session) -> None:
    project = create_project("user_1", "swift-otter", "hello", db_session)
    message = create_result_message(
        project.id,
        "Here you go",
        "https://sbx.example.com",
        "Todo App",
        {"app/page.tsx": "export default 1"},
        db_session,
    )

    assert message.role == MessageRole.ASSISTANT
    assert message.fragment is not None
    fragment = get_fragment(message.fragment.id, "user_1", db_session)
    assert fragment is not None
    assert fragment.title == "Todo App"
    assert fragment.files == {"app/page.tsx": "export default 1"}
    assert get_fragment(message.fragment.id, "user_2", db_session) is None


def test_error_message_has_no_fragment(db_session: Session) -> None:
    project = create_project("user_1", "swift-otter", "hello", db_session)
    message = create_error_message(project.id, "Something went wrong", db_session)

    messages = get_project_messages(project.id, db_session)
    assert messages[-1].id == message.id
    assert messages[-1].type == MessageType.ERROR
    assert messages[-1].fragment is None
