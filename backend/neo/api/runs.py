import logging
import traceback
from typing import Any, AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from neo.auth import CurrentUser, read_stream_token, require_user
from neo.run_store import get_run_record
from neo.runs import stream_run_events
from neo.sse import SSE_HEADERS
from neo.sse import run_failed_sse
from neo.sse import run_log_sse

logger = logging.getLogger("neo.api.runs")

router = APIRouter(prefix="/api/runs", tags=["runs"])


@router.get("/{run_id}")
async def get_run(run_id: str, user: CurrentUser = Depends(require_user)) -> dict[str, Any]:
    record = await get_run_record(run_id)
    if record is None or record.get("user_id") != user.id:
        raise HTTPException(status_code=404, detail="Run not found")
    return {
        "run_id": run_id,
        "project_id": record.get("project_id"),
        "status": record.get("status"),
        "events": len(record.get("events") or []),
        "result": record.get("result"),
        "error": record.get("error"),
    }


@router.get("/{run_id}/events")
async def run_events(run_id: str, token: str):
    """Follow a run's progress as Server-Sent Events."""
    claims = read_stream_token(token)
    if claims.get("run_id") != run_id:
        raise HTTPException(status_code=401, detail="Stream token does not match run")

    async def event_generator() -> AsyncGenerator[str, None]:
        try:
            async for chunk in stream_run_events(run_id):
                yield chunk
        except Exception as e:
            logger.error("run_events[%s] error: %s", run_id, str(e))
            tb = traceback.format_exc(limit=10)
            yield run_log_sse(run_id, f"stream exception: {str(e)}\n{tb}")
            yield run_failed_sse(run_id, str(e))

    return StreamingResponse(event_generator(), headers=SSE_HEADERS)
