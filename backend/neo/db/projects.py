"""Database operations for projects, their messages and fragments."""

import logging
from uuid import UUID

from sqlalchemy import desc
from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm import selectinload

from neo.db.models import Fragment
from neo.db.models import Message
from neo.db.models import MessageRole
from neo.db.models import MessageType
from neo.db.models import Project

logger = logging.getLogger("neo.db.projects")


def create_project(
    user_id: str, name: str, first_message: str, db_session: Session
) -> Project:
    """Create a project together with the user's opening message."""
    project = Project(user_id=user_id, name=name)
    project.messages.append(
        Message(
            content=first_message,
            role=MessageRole.USER,
            type=MessageType.RESULT,
        )
    )
    db_session.add(project)
    db_session.commit()
    logger.info("Created project %s for user %s", project.id, user_id)
    return project


def get_project(project_id: UUID, user_id: str, db_session: Session) -> Project | None:
    """Get a project by ID, ensuring it belongs to the user."""
    return db_session.execute(
        select(Project).where(Project.id == project_id, Project.user_id == user_id)
    ).scalar_one_or_none()


def get_user_projects(user_id: str, db_session: Session) -> list[Project]:
    return list(
        db_session.execute(
            select(Project)
            .where(Project.user_id == user_id)
            .order_by(desc(Project.updated_at))
        )
        .scalars()
        .all()
    )


def create_user_message(project_id: UUID, content: str, db_session: Session) -> Message:
    message = Message(
        project_id=project_id,
        content=content,
        role=MessageRole.USER,
        type=MessageType.RESULT,
    )
    db_session.add(message)
    db_session.commit()
    return message


def get_project_messages(project_id: UUID, db_session: Session) -> list[Message]:
    """All messages of a project in chronological order, fragments included."""
    return list(
        db_session.execute(
            select(Message)
            .options(selectinload(Message.fragment))
            .where(Message.project_id == project_id)
            .order_by(Message.created_at.asc())
        )
        .scalars()
        .all()
    )


def get_recent_messages(
    project_id: UUID, limit: int, db_session: Session
) -> list[Message]:
    """The newest `limit` messages of a project, newest first."""
    return list(
        db_session.execute(
            select(Message)
            .where(Message.project_id == project_id)
            .order_by(Message.created_at.desc())
            .limit(limit)
        )
        .scalars()
        .all()
    )


def create_result_message(
    project_id: UUID,
    content: str,
    sandbox_url: str,
    title: str,
    files: dict[str, str],
    db_session: Session,
) -> Message:
    message = Message(
        project_id=project_id,
        content=content,
        role=MessageRole.ASSISTANT,
        type=MessageType.RESULT,
        fragment=Fragment(sandbox_url=sandbox_url, title=title, files=dict(files)),
    )
    db_session.add(message)
    db_session.commit()
    return message


def create_error_message(project_id: UUID, content: str, db_session: Session) -> Message:
    message = Message(
        project_id=project_id,
        content=content,
        role=MessageRole.ASSISTANT,
        type=MessageType.ERROR,
    )
    db_session.add(message)
    db_session.commit()
    return message


def get_fragment(fragment_id: UUID, user_id: str, db_session: Session) -> Fragment | None:
    """Get a fragment, ensuring the owning project belongs to the user."""
    return db_session.execute(
        select(Fragment)
        .join(Message, Fragment.message_id == Message.id)
        .join(Project, Message.project_id == Project.id)
        .where(Fragment.id == fragment_id, Project.user_id == user_id)
    ).scalar_one_or_none()
