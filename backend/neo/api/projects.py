import asyncio
import logging
import random
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from neo.api.models import (
    CreateMessageResponse,
    CreateProjectResponse,
    MessagesResponse,
    MessageView,
    ProjectView,
    PromptRequest,
    RunTicket,
)
from neo.auth import CurrentUser, make_stream_token, require_user
from neo.db.engine import get_db_session
from neo.db.models import MessageRole
from neo.db.projects import (
    create_project,
    create_user_message,
    get_project,
    get_project_messages,
    get_user_projects,
)
from neo.runs import dispatch_code_agent
from neo.usage import consume_credits

logger = logging.getLogger("neo.api.projects")

router = APIRouter(prefix="/api/projects", tags=["projects"])

_ADJECTIVES = [
    "amber", "bold", "brisk", "calm", "clever", "cosmic", "crisp", "daring",
    "eager", "fancy", "gentle", "golden", "happy", "lively", "lucky", "mellow",
    "misty", "nimble", "proud", "quiet", "rapid", "shiny", "silent", "sunny",
    "swift", "tidy", "vivid", "witty",
]
_NOUNS = [
    "badger", "breeze", "canyon", "comet", "falcon", "forest", "galaxy", "harbor",
    "island", "lantern", "meadow", "meteor", "otter", "panda", "pebble", "planet",
    "river", "rocket", "sparrow", "summit", "thunder", "tiger", "valley", "willow",
]


def generate_project_name() -> str:
    return f"{random.choice(_ADJECTIVES)}-{random.choice(_NOUNS)}"


def _run_ticket(run_id: str, user: CurrentUser) -> RunTicket:
    return RunTicket(
        run_id=run_id,
        stream_token=make_stream_token({"run_id": run_id, "user_id": user.id}),
    )


def _get_owned_project(project_id: UUID, user: CurrentUser, db_session: Session):
    project = get_project(project_id, user.id, db_session)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _start_project(value: str, user: CurrentUser, db_session: Session) -> ProjectView:
    consume_credits(user, db_session)
    project = create_project(user.id, generate_project_name(), value, db_session)
    return ProjectView.model_validate(project)


def _start_message(
    project_id: UUID, value: str, user: CurrentUser, db_session: Session
) -> MessageView:
    _get_owned_project(project_id, user, db_session)
    consume_credits(user, db_session)
    message = create_user_message(project_id, value, db_session)
    return MessageView.model_validate(message)


@router.post("")
async def create_project_endpoint(
    request: PromptRequest,
    user: CurrentUser = Depends(require_user),
    db_session: Session = Depends(get_db_session),
) -> CreateProjectResponse:
    """Create a project from a prompt and start the code agent on it."""
    # Database work stays off the event loop
    project = await asyncio.to_thread(_start_project, request.value, user, db_session)
    run_id = await dispatch_code_agent(request.value, project.id, user.id)
    return CreateProjectResponse(project=project, run=_run_ticket(run_id, user))


@router.get("")
def list_projects(
    user: CurrentUser = Depends(require_user),
    db_session: Session = Depends(get_db_session),
) -> list[ProjectView]:
    return [ProjectView.model_validate(p) for p in get_user_projects(user.id, db_session)]


@router.get("/{project_id}")
def get_project_endpoint(
    project_id: UUID,
    user: CurrentUser = Depends(require_user),
    db_session: Session = Depends(get_db_session),
) -> ProjectView:
    return ProjectView.model_validate(_get_owned_project(project_id, user, db_session))


@router.get("/{project_id}/messages")
def list_messages(
    project_id: UUID,
    user: CurrentUser = Depends(require_user),
    db_session: Session = Depends(get_db_session),
) -> MessagesResponse:
    """Messages in chronological order, plus which fragment to show.

    The active fragment is the one on the latest assistant message that has
    one; the project is pending while the latest message is the user's.
    """
    _get_owned_project(project_id, user, db_session)
    messages = get_project_messages(project_id, db_session)

    active_fragment_id = None
    for message in reversed(messages):
        if message.role == MessageRole.ASSISTANT and message.fragment is not None:
            active_fragment_id = message.fragment.id
            break

    return MessagesResponse(
        messages=[MessageView.model_validate(m) for m in messages],
        active_fragment_id=active_fragment_id,
        is_pending=bool(messages) and messages[-1].role == MessageRole.USER,
    )


@router.post("/{project_id}/messages")
async def create_message(
    project_id: UUID,
    request: PromptRequest,
    user: CurrentUser = Depends(require_user),
    db_session: Session = Depends(get_db_session),
) -> CreateMessageResponse:
    message = await asyncio.to_thread(
        _start_message, project_id, request.value, user, db_session
    )
    run_id = await dispatch_code_agent(request.value, project_id, user.id)
    return CreateMessageResponse(message=message, run=_run_ticket(run_id, user))
