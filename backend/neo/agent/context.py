from typing import Any

from pydantic import BaseModel, Field


class AgentState(BaseModel):
    """State container shared by the code agent's tools during a run.

    Attributes:
        summary: Final `<task_summary>` message, or a failure note.
        files: Mapping of file paths to contents written by the agent.
        history: Prior conversation turns replayed into the first model call.
        sandbox_id: Sandbox the tools operate on.
        events: Structured tool events accumulated during a run.
    """

    summary: str = ""
    files: dict[str, str] = Field(default_factory=dict)
    history: list[dict[str, Any]] = Field(default_factory=list)
    sandbox_id: str | None = None
    events: list[dict[str, Any]] = Field(default_factory=list)

    def next_tool_id(self) -> str:
        started = sum(1 for ev in self.events if ev.get("phase") == "started")
        return f"tc_{started + 1}"
