import asyncio
import logging

from server_monitor.adapters.tcp_client import MonitorClient
from server_monitor.adapters.tcp_listener import DEFAULT_SESSION_TIMEOUT, MonitorListener
from server_monitor.domain.readiness import (
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_INTERVAL_MS,
    ReadinessPoller,
    RetryPolicy,
)
from server_monitor.domain.state import MonitorState, validate_transition
from server_monitor.log_format import EVENT_TRANSITION
from server_monitor.ports.resource import ControlledResource, MonitorObserver

logger = logging.getLogger(__name__)


class Monitor:
    """Runs a controlled resource and serves control commands for it.

    The listening socket is bound before the resource is started and closed
    on every exit path, including cancellation of the daemon task.
    """

    def __init__(
        self,
        key: str,
        port: int,
        retry_count: int = DEFAULT_RETRY_COUNT,
        retry_interval_ms: int = DEFAULT_RETRY_INTERVAL_MS,
        session_timeout: float = DEFAULT_SESSION_TIMEOUT,
        logger: logging.Logger = logger,
    ) -> None:
        self._key = key
        self._port = port
        self._logger = logger
        self._session_timeout = session_timeout
        self._poller = ReadinessPoller(RetryPolicy(count=retry_count, interval_ms=retry_interval_ms))
        self._client = MonitorClient(key, port, logger=logger)
        self._state = MonitorState.BINDING

    @property
    def key(self) -> str:
        return self._key

    @property
    def port(self) -> int:
        return self._port

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._poller.policy

    def interrupt(self) -> None:
        self._poller.interrupt()

    def _transition_to(self, target: MonitorState) -> None:
        validate_transition(self._state, target)
        self._logger.info(
            "State: %s -> %s", self._state.name, target.name, extra={"event": EVENT_TRANSITION}
        )
        self._state = target

    async def run_monitor(
        self,
        resource: ControlledResource,
        observer: MonitorObserver | None = None,
    ) -> MonitorState:
        """Serve commands for ``resource`` until a stop command or socket failure.

        Clears any earlier interrupt, so an interrupt only affects the run in
        progress.
        """
        self._poller.reset()
        self._state = MonitorState.BINDING
        listener = MonitorListener(
            self._key,
            self._port,
            session_timeout=self._session_timeout,
            logger=self._logger,
        )
        try:
            listener.bind()
        except (OSError, OverflowError) as exc:
            self._transition_to(MonitorState.BIND_FAILED)
            self._logger.error("Error starting or stopping the monitor", exc_info=exc)
            return self._state

        try:
            await self._run_lifecycle(listener, resource, observer)
        except (OSError, OverflowError) as exc:
            self._logger.error("Error starting or stopping the monitor", exc_info=exc)
        finally:
            listener.close()
        return self._state

    async def _run_lifecycle(
        self,
        listener: MonitorListener,
        resource: ControlledResource,
        observer: MonitorObserver | None,
    ) -> None:
        self._transition_to(MonitorState.STARTING)
        await resource.start()

        self._transition_to(MonitorState.AWAITING_START)
        started = await self._poller.wait_for_start(resource)
        self._transition_to(MonitorState.RUNNING)
        if started:
            if observer is not None:
                observer.started(resource, self._logger)
        else:
            self._logger.error("Server did not confirm start, accepting commands anyway")

        stop_requested = await listener.serve(resource)
        if not stop_requested:
            self._transition_to(MonitorState.TERMINATED)
            return

        self._transition_to(MonitorState.STOPPING)
        self._transition_to(MonitorState.AWAITING_STOP)
        stopped = await self._poller.wait_for_stop(resource)
        self._transition_to(MonitorState.TERMINATED)
        if not stopped:
            self._logger.error("Server did not confirm stop")
        elif started and observer is not None:
            observer.stopped(resource, self._logger)

    async def run_monitor_daemon(
        self,
        resource: ControlledResource,
        observer: MonitorObserver | None = None,
    ) -> asyncio.Task[MonitorState]:
        """Run the monitor on a background task and return its handle.

        Waits for an initial readiness check before returning so callers see
        that the resource is at least trying to run.
        """
        task = asyncio.create_task(
            self.run_monitor(resource, observer),
            name=f"monitor-{self._port}",
        )
        await asyncio.sleep(0)
        if not task.done():
            await self._poller.wait_for_start(resource)
        return task

    async def send_command(self, command: str) -> None:
        await self._client.send_command(command)

