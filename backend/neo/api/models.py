import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from neo import config
from neo.db.models import MessageRole, MessageType


class PromptRequest(BaseModel):
    """A natural-language coding request."""

    value: str = Field(..., min_length=1, max_length=config.MAX_MESSAGE_LENGTH)


class ProjectView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    created_at: datetime.datetime
    updated_at: datetime.datetime


class FragmentView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    sandbox_url: str
    files: dict[str, str]
    created_at: datetime.datetime


class MessageView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    content: str
    role: MessageRole
    type: MessageType
    created_at: datetime.datetime
    fragment: FragmentView | None = None


class RunTicket(BaseModel):
    """Handle for following a dispatched agent run over SSE."""

    run_id: str
    stream_token: str


class CreateProjectResponse(BaseModel):
    project: ProjectView
    run: RunTicket


class CreateMessageResponse(BaseModel):
    message: MessageView
    run: RunTicket


class MessagesResponse(BaseModel):
    messages: list[MessageView]
    active_fragment_id: UUID | None = None
    is_pending: bool = False


class FragmentExplorerResponse(BaseModel):
    fragment: FragmentView
    tree: list[Any]
    selected_file: str | None = None


class FileViewResponse(BaseModel):
    path: str
    content: str
    language: str
    breadcrumbs: list[dict[str, Any]]


class UsageResponse(BaseModel):
    points_limit: int
    consumed_points: int
    remaining_points: int
    ms_before_next: int
