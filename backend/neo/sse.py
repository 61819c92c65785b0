"""Server-Sent Event envelopes for agent runs.

Every chunk is one `data:` line holding
`{event_type, task_id, timestamp, data, error}`.
"""

import json
import time
from typing import Any


SSE_HEADERS: dict[str, str] = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

TOOL_EVENT_TYPES: dict[str, str] = {
    "started": "progress_update_tool_action_started",
    "completed": "progress_update_tool_action_completed",
}


def sse_format(event: dict[str, Any]) -> str:
    return f"data: {json.dumps(event, default=str)}\n\n"


def emit_event(
    task_id: str, event_type: str, data: Any = None, error: Any = None
) -> dict[str, Any]:
    return {
        "event_type": event_type,
        "task_id": task_id,
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S+00:00", time.gmtime()),
        "data": data,
        "error": error,
    }


def tool_event_sse(task_id: str, ev: dict[str, Any]) -> str | None:
    """Render a recorded tool event; events of unknown phase are dropped."""
    event_type = TOOL_EVENT_TYPES.get(ev.get("phase") or "")
    if event_type is None:
        return None
    function: dict[str, Any] = {"name": ev.get("name")}
    data: dict[str, Any] = {"tool_call": {"id": ev.get("tool_id"), "function": function}}
    if ev["phase"] == "started":
        function["arguments"] = ev.get("arguments")
    else:
        data["output_data"] = ev.get("output_data")
    return sse_format(emit_event(task_id, event_type, data=data))


def run_status_sse(run_id: str, status: str | None) -> str:
    return sse_format(emit_event(run_id, "run_status", data={"status": status}))


def run_completed_sse(run_id: str, result: Any) -> str:
    return sse_format(emit_event(run_id, "run_completed", data=result))


def run_failed_sse(run_id: str, error: Any) -> str:
    return sse_format(emit_event(run_id, "run_failed", error=error))


def run_log_sse(run_id: str, message: str) -> str:
    return sse_format(emit_event(run_id, "run_log", data=message))
