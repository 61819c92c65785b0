import asyncio
import logging
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from neo import config
from neo.agent.agent import (
    create_code_agent,
    create_fragment_title_agent,
    create_response_agent,
    generate_text,
)
from neo.agent.context import AgentState
from neo.agent.network import run_network
from neo.db.engine import get_session
from neo.db.models import MessageRole
from neo.db.projects import create_error_message
from neo.db.projects import create_result_message
from neo.db.projects import get_recent_messages
from neo.sandbox.utils import create_sandbox, get_sandbox, get_sandbox_url, release_sandbox
from neo.steps import StepRunner

logger = logging.getLogger("neo.agent.function")

ERROR_MESSAGE = "Something went wrong. Please try again"
DEFAULT_TITLE = "Fragment"
DEFAULT_RESPONSE = "Here you go"


class CodeAgentEvent(BaseModel):
    """Payload of a "code-agent/run" event."""

    value: str
    project_id: UUID


class CodeAgentResult(BaseModel):
    url: str
    title: str = DEFAULT_TITLE
    files: dict[str, str] = Field(default_factory=dict)
    summary: str = ""
    is_error: bool = False


def load_previous_messages(project_id: UUID, limit: int) -> list[dict[str, Any]]:
    """The latest `limit` project messages as chronological agent input items."""
    with get_session() as db_session:
        messages = get_recent_messages(project_id, limit, db_session)
        formatted = [
            {
                "role": "assistant" if m.role == MessageRole.ASSISTANT else "user",
                "content": m.content,
            }
            for m in messages
        ]
    formatted.reverse()
    return formatted


def save_result(
    project_id: UUID,
    is_error: bool,
    response: str,
    sandbox_url: str,
    title: str,
    files: dict[str, str],
) -> str:
    with get_session() as db_session:
        if is_error:
            message = create_error_message(project_id, ERROR_MESSAGE, db_session)
        else:
            message = create_result_message(
                project_id, response, sandbox_url, title, files, db_session
            )
        return str(message.id)


async def run_code_agent(
    event: CodeAgentEvent,
    run_id: str,
    state: AgentState | None = None,
    steps: StepRunner | None = None,
) -> CodeAgentResult:
    """Run the code agent for one user request and persist its outcome."""
    steps = steps or StepRunner(run_id)
    state = state if state is not None else AgentState()

    sandbox_id = await steps.run("get-sandbox-id", create_sandbox)
    state.sandbox_id = sandbox_id
    try:
        state.history = await steps.run(
            "get-previous-messages",
            lambda: asyncio.to_thread(
                load_previous_messages, event.project_id, config.HISTORY_LIMIT
            ),
        )

        await run_network(create_code_agent(), event.value, state)

        title = await generate_text(
            create_fragment_title_agent(), state.summary, DEFAULT_TITLE
        )
        response = await generate_text(
            create_response_agent(), state.summary, DEFAULT_RESPONSE
        )

        is_error = not state.summary or not state.files

        async def _sandbox_url() -> str:
            sandbox = await get_sandbox(sandbox_id)
            return get_sandbox_url(sandbox, config.SANDBOX_APP_PORT)

        sandbox_url = await steps.run("get-sandbox-url", _sandbox_url)

        await steps.run(
            "save-result",
            lambda: asyncio.to_thread(
                save_result,
                event.project_id,
                is_error,
                response,
                sandbox_url,
                title,
                state.files,
            ),
        )
    finally:
        await release_sandbox(sandbox_id)

    logger.info(
        "run[%s] finished project=%s error=%s files=%d",
        run_id,
        event.project_id,
        is_error,
        len(state.files),
    )
    return CodeAgentResult(
        url=sandbox_url,
        title=DEFAULT_TITLE,
        files=dict(state.files),
        summary=state.summary,
        is_error=is_error,
    )
