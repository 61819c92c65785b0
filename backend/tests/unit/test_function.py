from collections.abc import Generator
from typing import Any
from unittest.mock import AsyncMock
from unittest.mock import MagicMock
from unittest.mock import patch

import pytest
from sqlalchemy.orm import Session
from tenacity import wait_none

from neo.agent.context import AgentState
from neo.agent.function import DEFAULT_RESPONSE
from neo.agent.function import DEFAULT_TITLE
from neo.agent.function import ERROR_MESSAGE
from neo.agent.function import CodeAgentEvent
from neo.agent.function import load_previous_messages
from neo.agent.function import run_code_agent
from neo.db.models import MessageRole
from neo.db.models import MessageType
from neo.db.projects import create_project
from neo.db.projects import create_result_message
from neo.db.projects import get_project_messages
from neo.steps import StepRunner

SUMMARY = "<task_summary>\nBuilt a todo app.\n</task_summary>"


@pytest.fixture
def sandbox_mocks() -> Generator[dict[str, Any], None, None]:
    mocks = {
        "create_sandbox": AsyncMock(return_value="sbx_1"),
        "get_sandbox": AsyncMock(return_value=MagicMock()),
        "get_sandbox_url": MagicMock(return_value="https://sbx-3000.example.com"),
        "release_sandbox": AsyncMock(),
        "create_code_agent": MagicMock(),
        "create_fragment_title_agent": MagicMock(),
        "create_response_agent": MagicMock(),
    }
    patchers = [patch(f"neo.agent.function.{name}", mock) for name, mock in mocks.items()]
    for p in patchers:
        p.start()
    yield mocks
    for p in patchers:
        p.stop()


def _network_writing(summary: str, files: dict[str, str]) -> AsyncMock:
    async def fake_network(agent: Any, value: str, state: AgentState) -> None:
        state.files.update(files)
        if summary:
            state.summary = summary

    return AsyncMock(side_effect=fake_network)


def test_load_previous_messages_chronological(db_session: Session) -> None:
    project = create_project("user_1", "swift-otter", "Build a todo app", db_session)
    create_result_message(project.id, "Here you go", "https://x", "Todo", {}, db_session)

    history = load_previous_messages(project.id, 5)
    assert history == [
        {"role": "user", "content": "Build a todo app"},
        {"role": "assistant", "content": "Here you go"},
    ]


@pytest.mark.asyncio
async def test_successful_run_saves_fragment(
    db_session: Session, sandbox_mocks: dict[str, Any]
) -> None:
    project = create_project("user_1", "swift-otter", "Build a todo app", db_session)
    state = AgentState()
    network = _network_writing(SUMMARY, {"app/page.tsx": "export default 1"})
    titles = AsyncMock(side_effect=["Todo App", "I built a todo app."])

    with patch("neo.agent.function.run_network", network), patch(
        "neo.agent.function.generate_text", titles
    ):
        result = await run_code_agent(
            CodeAgentEvent(value="Build a todo app", project_id=project.id),
            "run_1",
            state=state,
            steps=StepRunner("run_1", wait=wait_none()),
        )

    assert not result.is_error
    assert result.url == "https://sbx-3000.example.com"
    assert result.title == DEFAULT_TITLE
    assert state.sandbox_id == "sbx_1"
    assert state.history == [{"role": "user", "content": "Build a todo app"}]
    sandbox_mocks["release_sandbox"].assert_awaited_once_with("sbx_1")

    db_session.expire_all()
    last = get_project_messages(project.id, db_session)[-1]
    assert last.role == MessageRole.ASSISTANT
    assert last.type == MessageType.RESULT
    assert last.content == "I built a todo app."
    assert last.fragment.title == "Todo App"
    assert last.fragment.files == {"app/page.tsx": "export default 1"}


@pytest.mark.asyncio
async def test_run_without_files_saves_error(
    db_session: Session, sandbox_mocks: dict[str, Any]
) -> None:
    project = create_project("user_1", "swift-otter", "Build a todo app", db_session)

    with patch("neo.agent.function.run_network", _network_writing(SUMMARY, {})), patch(
        "neo.agent.function.generate_text",
        AsyncMock(side_effect=[DEFAULT_TITLE, DEFAULT_RESPONSE]),
    ):
        result = await run_code_agent(
            CodeAgentEvent(value="Build a todo app", project_id=project.id),
            "run_1",
            steps=StepRunner("run_1", wait=wait_none()),
        )

    assert result.is_error
    db_session.expire_all()
    last = get_project_messages(project.id, db_session)[-1]
    assert last.type == MessageType.ERROR
    assert last.content == ERROR_MESSAGE
    assert last.fragment is None


@pytest.mark.asyncio
async def test_sandbox_released_when_network_fails(
    db_session: Session, sandbox_mocks: dict[str, Any]
) -> None:
    project = create_project("user_1", "swift-otter", "Build a todo app", db_session)

    with patch(
        "neo.agent.function.run_network", AsyncMock(side_effect=RuntimeError("model down"))
    ):
        with pytest.raises(RuntimeError, match="model down"):
            await run_code_agent(
                CodeAgentEvent(value="Build a todo app", project_id=project.id),
                "run_1",
                steps=StepRunner("run_1", wait=wait_none()),
            )

    sandbox_mocks["release_sandbox"].assert_awaited_once_with("sbx_1")
