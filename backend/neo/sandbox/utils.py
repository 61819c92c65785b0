import logging
import shlex
import subprocess
from collections.abc import Callable
from datetime import timedelta
from typing import Any

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential
from vercel.sandbox import GitSource
from vercel.sandbox import Sandbox
from vercel.sandbox import create_sandbox as create_vercel_sandbox
from vercel.sandbox import get_sandbox as get_vercel_sandbox

from neo import config
from neo.sandbox.cache import SANDBOX_CACHE

logger = logging.getLogger("neo.sandbox")

DEFAULT_CWD = "/vercel/sandbox"
WRITE_MAX_ATTEMPTS = 4
# 0.25s, 0.5s, 1s between chunk write attempts
WRITE_RETRY_WAIT = wait_exponential(multiplier=0.25)


class CommandFailed(Exception):
    def __init__(self, exit_code: int | None, stdout: str, stderr: str) -> None:
        super().__init__(f"Command exited with code {exit_code}")
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr


def sandbox_cwd(sandbox: Sandbox) -> str:
    return sandbox.cwd or DEFAULT_CWD


async def create_sandbox() -> str:
    """Create a sandbox, start the Next.js app on the app port and return its id.

    A configured template repository is cloned into the sandbox and installed;
    without one the app is scaffolded by the bootstrap command. A sandbox whose
    app fails to come up is destroyed before the error propagates.
    """
    source = None
    if config.SANDBOX_TEMPLATE_REPO:
        source = GitSource(url=config.SANDBOX_TEMPLATE_REPO, depth=1)
    sandbox = await create_vercel_sandbox(
        image=config.SANDBOX_IMAGE,
        source=source,
        ports=[config.SANDBOX_APP_PORT],
        execution_time_limit=timedelta(milliseconds=config.SANDBOX_TIMEOUT_MS),
    )
    sandbox_id = sandbox.name
    logger.info("created sandbox %s template=%s", sandbox_id, config.SANDBOX_TEMPLATE_REPO or "-")
    try:
        await start_app(sandbox)
    except Exception:
        logger.error("sandbox %s app did not start, destroying it", sandbox_id)
        try:
            await sandbox.destroy()
        except Exception as e:
            logger.warning("destroying sandbox %s failed: %s", sandbox_id, str(e))
        raise
    SANDBOX_CACHE[sandbox_id] = sandbox
    return sandbox_id


async def start_app(sandbox: Sandbox) -> None:
    """Install or scaffold the app, run the dev server detached and wait for it."""
    setup = (
        config.SANDBOX_INSTALL_COMMAND
        if config.SANDBOX_TEMPLATE_REPO
        else config.SANDBOX_BOOTSTRAP_COMMAND
    )
    logger.info("sandbox %s setup: %s", sandbox.name, setup)
    await run_terminal(sandbox, setup)

    # Long-lived process: output is discarded so the pipe never fills
    dev = await sandbox.create_process(
        "bash",
        ["-lc", f"cd {sandbox_cwd(sandbox)} && {config.SANDBOX_DEV_COMMAND}"],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    logger.info("sandbox %s dev server process=%s", sandbox.name, dev.id)
    await wait_for_port(sandbox, config.SANDBOX_APP_PORT, config.SANDBOX_READY_TIMEOUT)


async def wait_for_port(sandbox: Sandbox, port: int, timeout: int) -> None:
    await run_terminal(
        sandbox,
        f"for i in $(seq 1 {timeout}); do "
        f"curl -s -o /dev/null http://localhost:{port} && exit 0; sleep 1; "
        f"done; echo 'port {port} not ready after {timeout}s' >&2; exit 1",
    )


async def get_sandbox(sandbox_id: str) -> Sandbox:
    if sandbox_id in SANDBOX_CACHE:
        return SANDBOX_CACHE[sandbox_id]
    fetched = await get_vercel_sandbox(name=sandbox_id)
    SANDBOX_CACHE[sandbox_id] = fetched
    return fetched


async def release_sandbox(sandbox_id: str | None) -> None:
    """Forget the handle; the sandbox keeps running for the preview."""
    if not sandbox_id:
        return
    if SANDBOX_CACHE.pop(sandbox_id, None) is not None:
        logger.info("released sandbox %s", sandbox_id)


async def run_terminal(sandbox: Sandbox, command: str) -> dict[str, Any]:
    result = await sandbox.run_process(
        "bash",
        ["-lc", f"cd {sandbox_cwd(sandbox)} && {command}"],
        capture_output=True,
    )
    stdout = result.stdout or ""
    stderr = result.stderr or ""
    if result.returncode != 0:
        raise CommandFailed(result.returncode, stdout, stderr)
    return {"stdout": stdout, "stderr": stderr, "exit_code": result.returncode}


def _log_write_retry(sandbox_id: str) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "sandbox %s write retry %d/%d: %s",
            sandbox_id,
            retry_state.attempt_number,
            WRITE_MAX_ATTEMPTS - 1,
            str(exc),
        )

    return before_sleep


async def _write_chunk(sandbox: Sandbox, chunk: list[tuple[str, str]]) -> None:
    async with sandbox.fs.batch(cwd=sandbox_cwd(sandbox)) as batch:
        for path, content in chunk:
            batch.write_text(path, content)


async def write_files(sandbox: Sandbox, files: dict[str, str]) -> int:
    """Write files into the sandbox cwd in chunks, retrying transient errors."""
    payload: list[tuple[str, str]] = []
    for path, content in files.items():
        p = str(path).lstrip("/")
        if not p:
            continue
        payload.append((p, str(content)))

    chunk_size = config.SANDBOX_WRITE_CHUNK
    for i in range(0, len(payload), chunk_size):
        chunk = payload[i : i + chunk_size]
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(WRITE_MAX_ATTEMPTS),
            wait=WRITE_RETRY_WAIT,
            before_sleep=_log_write_retry(sandbox.name),
            reraise=True,
        ):
            with attempt:
                await _write_chunk(sandbox, chunk)
    return len(payload)


async def read_file(sandbox: Sandbox, path: str) -> str:
    result = await sandbox.run_process(
        "bash",
        ["-lc", f"cd {sandbox_cwd(sandbox)} && cat -- {shlex.quote(path)}"],
        capture_output=True,
    )
    if result.returncode != 0:
        stderr = result.stderr or ""
        raise FileNotFoundError(stderr.strip() or f"Cannot read {path}")
    return result.stdout or ""


def get_sandbox_url(sandbox: Sandbox, port: int | None = None) -> str:
    port = port or config.SANDBOX_APP_PORT
    for route in sandbox.routes:
        if route.port == port:
            url = route.url
            if not url.startswith(("http://", "https://")):
                url = f"https://{url}"
            return url
    raise ValueError(f"Port {port} is not exposed by sandbox {sandbox.name}")
