import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_random_exponential
from tenacity.wait import wait_base

from neo import config

logger = logging.getLogger("neo.steps")

T = TypeVar("T")


class StepRunner:
    """Runs named units of work with retries and records what each returned.

    Step names are unique within a run; a name that already completed returns
    its recorded result without running again.
    """

    def __init__(
        self,
        run_id: str,
        max_attempts: int | None = None,
        wait: wait_base | None = None,
    ) -> None:
        self.run_id = run_id
        self.max_attempts = max_attempts or config.STEP_MAX_ATTEMPTS
        self.wait = (
            wait if wait is not None else wait_random_exponential(multiplier=0.5, max=10)
        )
        self.completed: dict[str, Any] = {}

    def _log_retry(self, name: str) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "run[%s] step=%s attempt=%d failed: %s",
                self.run_id,
                name,
                retry_state.attempt_number,
                str(exc),
            )

        return before_sleep

    async def run(self, name: str, fn: Callable[[], Awaitable[T]]) -> T:
        if name in self.completed:
            return self.completed[name]
        logger.info("run[%s] step=%s start", self.run_id, name)
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.wait,
            before_sleep=self._log_retry(name),
            reraise=True,
        ):
            with attempt:
                result = await fn()
        self.completed[name] = result
        logger.info("run[%s] step=%s done", self.run_id, name)
        return result
