import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from server_monitor.ports.resource import ControlledResource

logger = logging.getLogger(__name__)

DEFAULT_RETRY_COUNT = 3
DEFAULT_RETRY_INTERVAL_MS = 500


@dataclass(frozen=True)
class RetryPolicy:
    count: int = DEFAULT_RETRY_COUNT
    interval_ms: int = DEFAULT_RETRY_INTERVAL_MS

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ValueError(f"Retry count must be positive, got {self.count}")
        if self.interval_ms < 0:
            raise ValueError(f"Retry interval must not be negative, got {self.interval_ms}")

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000


class ReadinessPoller:
    """Bounded wait for a resource whose start/stop completes asynchronously.

    The predicate is checked once, then up to ``count - 1`` more times with
    ``interval_ms`` of sleep before each check. An interrupted sleep ends the
    wait with a not-ready result.
    """

    def __init__(self, policy: RetryPolicy | None = None) -> None:
        self._policy = policy or RetryPolicy()
        self._interrupted = asyncio.Event()

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def interrupted(self) -> bool:
        return self._interrupted.is_set()

    def interrupt(self) -> None:
        self._interrupted.set()

    def reset(self) -> None:
        self._interrupted.clear()

    async def wait_for_start(self, resource: ControlledResource) -> bool:
        return await self._poll(resource.is_started, "start")

    async def wait_for_stop(self, resource: ControlledResource) -> bool:
        return await self._poll(resource.is_stopped, "stop")

    async def _poll(self, predicate: Callable[[], Awaitable[bool]], action: str) -> bool:
        if await predicate():
            return True
        for attempt in range(1, self._policy.count):
            if not await self._sleep():
                logger.warning("Interrupted while waiting for resource to %s", action)
                return False
            if await predicate():
                return True
            logger.debug(
                "Resource not ready to %s after %d of %d checks",
                action,
                attempt + 1,
                self._policy.count,
            )
        return False

    async def _sleep(self) -> bool:
        if self._interrupted.is_set():
            return False
        try:
            await asyncio.wait_for(self._interrupted.wait(), timeout=self._policy.interval_seconds)
        except asyncio.TimeoutError:
            return True
        return False
