import asyncio
import logging
import os
import shlex
import signal

logger = logging.getLogger(__name__)

DEFAULT_STOP_GRACE_SECONDS = 10.0
KILL_WAIT_SECONDS = 5.0


class SubprocessResource:
    """Controls a child process started in its own process group.

    ``configure("command", ...)`` and ``configure("cwd", ...)`` set how the
    process is launched; any other name becomes an environment variable for
    the next start.
    """

    def __init__(
        self,
        command: list[str] | None = None,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        stop_grace_seconds: float = DEFAULT_STOP_GRACE_SECONDS,
    ) -> None:
        self._command = list(command or [])
        self._cwd = cwd
        self._env = dict(env or {})
        self._stop_grace_seconds = stop_grace_seconds
        self._process: asyncio.subprocess.Process | None = None
        self._exit_task: asyncio.Task[int] | None = None

    @property
    def command(self) -> list[str]:
        return list(self._command)

    @property
    def env(self) -> dict[str, str]:
        return dict(self._env)

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process else None

    async def configure(self, name: str, value: str) -> None:
        if name == "command":
            self._command = shlex.split(value)
        elif name == "cwd":
            self._cwd = value or None
        else:
            self._env[name] = value
        logger.info("Configured %s=%s", name, value)

    async def start(self) -> None:
        if self._process is not None and self._process.returncode is None:
            logger.warning("Process %d is already running", self._process.pid)
            return
        if not self._command:
            raise ValueError("No command configured for subprocess resource")

        spawn_env = dict(os.environ)
        spawn_env.update(self._env)
        self._process = await asyncio.create_subprocess_exec(
            *self._command,
            cwd=self._cwd,
            env=spawn_env,
            start_new_session=True,
        )
        self._exit_task = asyncio.create_task(self._wait_for_exit(self._process))
        logger.info("Started %s (pid=%d)", shlex.join(self._command), self._process.pid)

    async def stop(self) -> None:
        if not self._signal(signal.SIGTERM):
            return
        # a paused group only sees SIGTERM once continued
        self._signal(signal.SIGCONT)
        await self._kill_after_grace(self._process)

    async def pause(self) -> None:
        self._signal(signal.SIGSTOP)

    async def resume(self) -> None:
        self._signal(signal.SIGCONT)

    async def is_started(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def is_stopped(self) -> bool:
        return self._process is None or self._process.returncode is not None

    def _signal(self, sig: signal.Signals) -> bool:
        if self._process is None or self._process.returncode is not None:
            logger.warning("Cannot send %s, process is not running", sig.name)
            return False
        try:
            os.killpg(self._process.pid, sig)
        except ProcessLookupError:
            return False
        logger.info("Sent %s to process group of pid %d", sig.name, self._process.pid)
        return True

    async def _kill_after_grace(self, process: asyncio.subprocess.Process) -> None:
        try:
            await asyncio.wait_for(process.wait(), timeout=self._stop_grace_seconds)
            return
        except asyncio.TimeoutError:
            logger.warning("Process %d ignored SIGTERM, killing", process.pid)
        # the group id is the leader pid, even once the leader has exited
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=KILL_WAIT_SECONDS)
        except asyncio.TimeoutError:
            logger.error("Process %d survived SIGKILL", process.pid)

    @staticmethod
    async def _wait_for_exit(process: asyncio.subprocess.Process) -> int:
        code = await process.wait()
        logger.info("Process %d exited with code %d", process.pid, code)
        return code
