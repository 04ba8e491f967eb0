import logging
import socket

import pytest

TEST_KEY = "test"
LOOPBACK_ADDRESS = "127.0.0.1"


class FakeResource:
    """Records every lifecycle call; readiness answers are scripted."""

    def __init__(
        self,
        started: list[bool] | None = None,
        stopped: list[bool] | None = None,
    ) -> None:
        self.calls: list[tuple] = []
        self._started = list(started) if started is not None else [True]
        self._stopped = list(stopped) if stopped is not None else [True]
        self.started_checks = 0
        self.stopped_checks = 0
        self.fail_on: set[str] = set()

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def _record(self, *call) -> None:
        self.calls.append(call)
        if call[0] in self.fail_on:
            raise RuntimeError(f"{call[0]} failed")

    async def configure(self, name: str, value: str) -> None:
        self._record("configure", name, value)

    async def start(self) -> None:
        self._record("start")

    async def stop(self) -> None:
        self._record("stop")

    async def pause(self) -> None:
        self._record("pause")

    async def resume(self) -> None:
        self._record("resume")

    async def is_started(self) -> bool:
        self.started_checks += 1
        return _next_answer(self._started)

    async def is_stopped(self) -> bool:
        self.stopped_checks += 1
        return _next_answer(self._stopped)


def _next_answer(answers: list[bool]) -> bool:
    if len(answers) > 1:
        return answers.pop(0)
    return answers[0] if answers else False


class RecordingObserver:
    def __init__(self) -> None:
        self.events: list[tuple[str, object, logging.Logger]] = []

    def started(self, resource, logger: logging.Logger) -> None:
        self.events.append(("started", resource, logger))

    def stopped(self, resource, logger: logging.Logger) -> None:
        self.events.append(("stopped", resource, logger))

    @property
    def names(self) -> list[str]:
        return [event[0] for event in self.events]


def count_messages(caplog: pytest.LogCaptureFixture, message: str) -> int:
    return sum(1 for record in caplog.records if record.getMessage() == message)


@pytest.fixture
def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("0.0.0.0", 0))
        return sock.getsockname()[1]


@pytest.fixture
def loopback_host(monkeypatch):
    monkeypatch.setattr(
        "server_monitor.adapters.tcp_listener.resolve_local_host",
        lambda: LOOPBACK_ADDRESS,
    )
    monkeypatch.setattr(
        "server_monitor.adapters.tcp_client.resolve_local_host",
        lambda: LOOPBACK_ADDRESS,
    )
    return LOOPBACK_ADDRESS


@pytest.fixture
def fake_resource() -> FakeResource:
    return FakeResource()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def log_capture(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    caplog.set_level(logging.DEBUG, logger="server_monitor")
    return caplog
