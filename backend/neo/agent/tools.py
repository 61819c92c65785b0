import json
import logging
from typing import Any

from agents import RunContextWrapper, function_tool
from pydantic import BaseModel

from neo.agent.context import AgentState
from neo.sandbox.utils import CommandFailed
from neo.sandbox.utils import get_sandbox
from neo.sandbox.utils import read_file
from neo.sandbox.utils import run_terminal
from neo.sandbox.utils import write_files

logger = logging.getLogger("neo.agent.tools")


class FileInput(BaseModel):
    path: str
    content: str


def _record_started(state: AgentState, name: str, arguments: dict[str, Any]) -> str:
    tool_id = state.next_tool_id()
    state.events.append(
        {"phase": "started", "tool_id": tool_id, "name": name, "arguments": arguments}
    )
    return tool_id


def _record_completed(state: AgentState, tool_id: str, name: str, output: Any) -> None:
    state.events.append(
        {"phase": "completed", "tool_id": tool_id, "name": name, "output_data": output}
    )


def _require_sandbox_id(state: AgentState) -> str:
    if not state.sandbox_id:
        raise RuntimeError("No sandbox attached to this run")
    return state.sandbox_id


async def perform_terminal(state: AgentState, command: str) -> str:
    tool_id = _record_started(state, "terminal", {"command": command})
    try:
        sandbox = await get_sandbox(_require_sandbox_id(state))
        result = await run_terminal(sandbox, command)
        output = result["stdout"]
    except CommandFailed as e:
        logger.info("terminal command failed exit=%s: %s", e.exit_code, command)
        output = f"Command failed: {e}\nstdout: {e.stdout}\nstderr: {e.stderr}"
    except Exception as e:
        logger.error("terminal error: %s", str(e))
        output = f"Command failed: {e}\nstdout: \nstderr: "
    _record_completed(state, tool_id, "terminal", output)
    return output


async def perform_create_or_update_files(
    state: AgentState, files: list[FileInput]
) -> str:
    tool_id = _record_started(
        state, "createOrUpdateFiles", {"files": [f.path for f in files]}
    )
    updated = dict(state.files)
    try:
        sandbox = await get_sandbox(_require_sandbox_id(state))
        to_write = {f.path: f.content for f in files}
        await write_files(sandbox, to_write)
        updated.update(to_write)
    except Exception as e:
        output = f"Error: {e}"
        _record_completed(state, tool_id, "createOrUpdateFiles", {"error": str(e)})
        return output

    state.files = updated
    paths = [f.path for f in files]
    _record_completed(
        state,
        tool_id,
        "createOrUpdateFiles",
        {"files": {p: updated[p] for p in paths}},
    )
    return f"Updated files: {', '.join(paths)}" if paths else "No files were provided."


async def perform_read_files(state: AgentState, files: list[str]) -> str:
    tool_id = _record_started(state, "readFiles", {"files": list(files)})
    try:
        sandbox = await get_sandbox(_require_sandbox_id(state))
        contents = []
        for path in files:
            contents.append({"path": path, "content": await read_file(sandbox, path)})
        output = json.dumps(contents)
    except Exception as e:
        output = f"Error: {e}"
    _record_completed(state, tool_id, "readFiles", output)
    return output


@function_tool(name_override="terminal")
async def terminal(ctx: RunContextWrapper[AgentState], command: str) -> str:
    """Use the terminal to run commands.

    Args:
        command: Shell command to run from the project root.
    Returns:
        The command's stdout, or a failure report with stdout and stderr.
    """
    return await perform_terminal(ctx.context, command)


@function_tool(name_override="createOrUpdateFiles")
async def create_or_update_files(
    ctx: RunContextWrapper[AgentState], files: list[FileInput]
) -> str:
    """Create or update files in the sandbox.

    Args:
        files: Files to write, each with a project-relative path and full content.
    Returns:
        The updated paths, or an error message.
    """
    return await perform_create_or_update_files(ctx.context, files)


@function_tool(name_override="readFiles")
async def read_files(ctx: RunContextWrapper[AgentState], files: list[str]) -> str:
    """Read files from the sandbox.

    Args:
        files: Project-relative paths to read.
    Returns:
        JSON list of {path, content} objects, or an error message.
    """
    return await perform_read_files(ctx.context, files)


CODE_AGENT_TOOLS = [terminal, create_or_update_files, read_files]
