"""Dispatch of "code-agent/run" events to background agent runs."""

import asyncio
import logging
import time
import traceback
import uuid
from collections.abc import AsyncGenerator
from uuid import UUID

from neo.agent.context import AgentState
from neo.agent.function import ERROR_MESSAGE, CodeAgentEvent, run_code_agent
from neo.db.engine import get_session
from neo.db.projects import create_error_message
from neo.run_store import create_run_record, get_run_record, update_run_record
from neo.sse import run_completed_sse
from neo.sse import run_failed_sse
from neo.sse import run_log_sse
from neo.sse import run_status_sse
from neo.sse import tool_event_sse

logger = logging.getLogger("neo.runs")

SLEEP_INTERVAL_SECONDS = 0.25
STREAM_MAX_SECONDS = 15 * 60

# Strong references so running tasks are not garbage collected
_RUN_TASKS: set[asyncio.Task] = set()


def make_run_id() -> str:
    return f"run_{int(time.time()*1000)}_{uuid.uuid4().hex[:8]}"


def _save_failure(project_id: UUID) -> None:
    with get_session() as db_session:
        create_error_message(project_id, ERROR_MESSAGE, db_session)


async def execute_run(event: CodeAgentEvent, run_id: str) -> None:
    """Run the code agent, mirroring its tool events into the run store."""
    state = AgentState()
    await update_run_record(run_id, status="running")
    run_task = asyncio.create_task(run_code_agent(event, run_id, state=state))

    flushed = 0
    try:
        while not run_task.done():
            if len(state.events) > flushed:
                flushed = len(state.events)
                await update_run_record(run_id, events=list(state.events))
            await asyncio.sleep(SLEEP_INTERVAL_SECONDS)
        result = await run_task
    except Exception as e:
        logger.error("run[%s] error: %s\n%s", run_id, str(e), traceback.format_exc(limit=10))
        try:
            await asyncio.to_thread(_save_failure, event.project_id)
        except Exception:
            logger.exception("run[%s] could not persist failure message", run_id)
        await update_run_record(
            run_id, status="failed", error=str(e), events=list(state.events)
        )
        return

    await update_run_record(
        run_id,
        status="completed",
        result=result.model_dump(mode="json"),
        events=list(state.events),
    )


async def dispatch_code_agent(value: str, project_id: UUID, user_id: str) -> str:
    """Record a queued run and start it in the background; returns the run id."""
    run_id = make_run_id()
    await create_run_record(run_id, str(project_id), user_id)
    event = CodeAgentEvent(value=value, project_id=project_id)
    task = asyncio.create_task(execute_run(event, run_id))
    _RUN_TASKS.add(task)
    task.add_done_callback(_RUN_TASKS.discard)
    logger.info("run[%s] dispatched project=%s", run_id, project_id)
    return run_id


async def stream_run_events(run_id: str) -> AsyncGenerator[str, None]:
    """Poll the run store and stream status and tool events as SSE chunks."""
    last_idx = 0
    last_status: str | None = None
    deadline = time.monotonic() + STREAM_MAX_SECONDS

    while True:
        record = await get_run_record(run_id)
        if record is None:
            yield run_failed_sse(run_id, "Run not found")
            return

        status = record.get("status")
        if status != last_status:
            last_status = status
            yield run_status_sse(run_id, status)

        events = record.get("events") or []
        while last_idx < len(events):
            chunk = tool_event_sse(run_id, events[last_idx])
            last_idx += 1
            if chunk:
                yield chunk

        if status == "completed":
            yield run_completed_sse(run_id, record.get("result"))
            return
        if status == "failed":
            yield run_failed_sse(run_id, record.get("error"))
            return

        if time.monotonic() > deadline:
            yield run_log_sse(run_id, "Stream timed out")
            return
        await asyncio.sleep(SLEEP_INTERVAL_SECONDS)
