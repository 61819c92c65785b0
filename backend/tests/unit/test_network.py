from typing import Any
from unittest.mock import AsyncMock
from unittest.mock import MagicMock
from unittest.mock import patch

import pytest
from agents import MaxTurnsExceeded

from neo.agent.context import AgentState
from neo.agent.network import CONTINUE_PROMPT
from neo.agent.network import FAILED_SUMMARY
from neo.agent.network import is_finished
from neo.agent.network import on_response
from neo.agent.network import run_network


class FakeRunResult:
    def __init__(self, final_output: Any, turns: int = 1) -> None:
        self.new_items: list[Any] = []
        self.final_output = final_output
        self.raw_responses = [object()] * turns

    def to_input_list(self) -> list[dict[str, str]]:
        return [{"role": "assistant", "content": str(self.final_output)}]


SUMMARY = "<task_summary>\nBuilt a landing page.\n</task_summary>"


def test_on_response_keeps_only_summaries() -> None:
    state = AgentState()
    on_response(state, "Working on it")
    assert state.summary == ""

    on_response(state, SUMMARY)
    assert state.summary == SUMMARY

    on_response(state, None)
    assert state.summary == FAILED_SUMMARY


def test_is_finished() -> None:
    assert is_finished(SUMMARY)
    assert not is_finished("done")
    assert not is_finished(None)


@pytest.mark.asyncio
async def test_network_stops_on_summary() -> None:
    state = AgentState(history=[{"role": "user", "content": "earlier"}])
    runner = AsyncMock(return_value=FakeRunResult(SUMMARY, turns=3))

    with patch("neo.agent.network.Runner.run", runner):
        result = await run_network(MagicMock(), "Build a page", state, max_iter=15)

    assert result.finished
    assert result.iterations == 1
    assert result.turns_used == 3
    assert state.summary == SUMMARY
    sent = runner.await_args.kwargs["input"]
    assert sent == [
        {"role": "user", "content": "earlier"},
        {"role": "user", "content": "Build a page"},
    ]
    assert runner.await_args.kwargs["max_turns"] == 15


@pytest.mark.asyncio
async def test_network_continues_until_summary() -> None:
    state = AgentState()
    runner = AsyncMock(
        side_effect=[FakeRunResult("still working", turns=4), FakeRunResult(SUMMARY, turns=2)]
    )

    with patch("neo.agent.network.Runner.run", runner):
        result = await run_network(MagicMock(), "Build a page", state, max_iter=15)

    assert result.finished
    assert result.iterations == 2
    assert result.turns_used == 6
    second_call = runner.await_args_list[1].kwargs
    assert second_call["max_turns"] == 11
    assert second_call["input"][-1] == {"role": "user", "content": CONTINUE_PROMPT}


@pytest.mark.asyncio
async def test_network_budget_exhausted_without_summary() -> None:
    state = AgentState()
    runner = AsyncMock(return_value=FakeRunResult("still working", turns=5))

    with patch("neo.agent.network.Runner.run", runner):
        result = await run_network(MagicMock(), "Build a page", state, max_iter=10)

    assert not result.finished
    assert result.turns_used == 10
    assert runner.await_count == 2
    assert state.summary == ""


@pytest.mark.asyncio
async def test_network_max_turns_exceeded_marks_failure() -> None:
    state = AgentState()
    runner = AsyncMock(side_effect=MaxTurnsExceeded("Max turns (15) exceeded"))

    with patch("neo.agent.network.Runner.run", runner):
        result = await run_network(MagicMock(), "Build a page", state, max_iter=15)

    assert not result.finished
    assert state.summary == FAILED_SUMMARY
