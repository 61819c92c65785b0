"""The code agent loop.

The agent is re-run until its last assistant message carries `<task_summary>`,
bounded by a total budget of model turns. The tools mutate the shared
`AgentState`; this module only decides when to stop and what the summary is.
"""

import logging
from typing import Any

from agents import Agent, ItemHelpers, MaxTurnsExceeded, MessageOutputItem, Runner
from pydantic import BaseModel

from neo import config
from neo.agent.context import AgentState
from neo.agent.prompts import TASK_SUMMARY_TAG

logger = logging.getLogger("neo.agent.network")

FAILED_SUMMARY = "The task was not generated successfully"

CONTINUE_PROMPT = (
    "Continue working on the task. When everything is done, reply with the "
    f"{TASK_SUMMARY_TAG} block and nothing else."
)


class NetworkResult(BaseModel):
    state: AgentState
    iterations: int
    turns_used: int
    finished: bool


def last_assistant_text(result: Any) -> str | None:
    """Text of the last assistant message produced by a run, if any."""
    for item in reversed(list(getattr(result, "new_items", None) or [])):
        if isinstance(item, MessageOutputItem):
            text = ItemHelpers.text_message_output(item)
            if text:
                return text
    final = getattr(result, "final_output", None)
    if isinstance(final, str) and final:
        return final
    return None


def on_response(state: AgentState, text: str | None) -> None:
    if text:
        if TASK_SUMMARY_TAG in text:
            state.summary = text
    else:
        state.summary = FAILED_SUMMARY


def is_finished(text: str | None) -> bool:
    return bool(text) and TASK_SUMMARY_TAG in text


async def run_network(
    agent: Agent,
    value: str,
    state: AgentState,
    max_iter: int | None = None,
) -> NetworkResult:
    budget = max_iter if max_iter is not None else config.AGENT_MAX_ITER
    input_items: list[Any] = [*state.history, {"role": "user", "content": value}]
    turns_used = 0
    iterations = 0

    while turns_used < budget:
        iterations += 1
        try:
            result = await Runner.run(
                agent,
                input=input_items,
                context=state,
                max_turns=budget - turns_used,
            )
        except MaxTurnsExceeded:
            logger.warning("network stopped after exhausting %d turns", budget)
            on_response(state, None)
            return NetworkResult(
                state=state, iterations=iterations, turns_used=budget, finished=False
            )

        turns_used += max(1, len(getattr(result, "raw_responses", None) or []))
        text = last_assistant_text(result)
        on_response(state, text)
        if is_finished(text):
            logger.info(
                "network finished iterations=%d turns=%d files=%d",
                iterations,
                turns_used,
                len(state.files),
            )
            return NetworkResult(
                state=state, iterations=iterations, turns_used=turns_used, finished=True
            )
        input_items = [*result.to_input_list(), {"role": "user", "content": CONTINUE_PROMPT}]

    logger.warning("network reached max iterations without a task summary")
    return NetworkResult(
        state=state, iterations=iterations, turns_used=turns_used, finished=False
    )
