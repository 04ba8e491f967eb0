import asyncio
import sys

import pytest

from server_monitor.adapters.subprocess_resource import SubprocessResource
from server_monitor.domain.readiness import ReadinessPoller, RetryPolicy

SLEEPER = [sys.executable, "-c", "import time; time.sleep(30)"]


class TestSubprocessConfigure:
    @pytest.mark.asyncio
    async def test_command_is_shell_split(self):
        resource = SubprocessResource()
        await resource.configure("command", "python -m http.server '8000'")
        assert resource.command == ["python", "-m", "http.server", "8000"]

    @pytest.mark.asyncio
    async def test_other_names_become_environment(self):
        resource = SubprocessResource()
        await resource.configure("DEBUG", "off")
        assert resource.env == {"DEBUG": "off"}

    @pytest.mark.asyncio
    async def test_start_without_command_fails(self):
        with pytest.raises(ValueError):
            await SubprocessResource().start()

    @pytest.mark.asyncio
    async def test_not_started_is_stopped(self):
        resource = SubprocessResource(command=SLEEPER)
        assert not await resource.is_started()
        assert await resource.is_stopped()


@pytest.mark.skipif(sys.platform == "win32", reason="process groups are POSIX only")
class TestSubprocessLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        resource = SubprocessResource(command=SLEEPER)
        poller = ReadinessPoller(RetryPolicy(count=50, interval_ms=100))
        await resource.start()
        assert await poller.wait_for_start(resource)
        assert resource.pid is not None

        await resource.stop()
        assert await poller.wait_for_stop(resource)
        assert resource.returncode is not None

    @pytest.mark.asyncio
    async def test_stop_paused_process(self):
        resource = SubprocessResource(command=SLEEPER)
        poller = ReadinessPoller(RetryPolicy(count=50, interval_ms=100))
        await resource.start()
        await resource.pause()
        assert await resource.is_started()
        await resource.resume()
        await resource.pause()
        await resource.stop()
        assert await poller.wait_for_stop(resource)

    @pytest.mark.asyncio
    async def test_environment_passed_to_child(self, tmp_path):
        output = tmp_path / "out.txt"
        resource = SubprocessResource(
            command=[sys.executable, "-c", f"import os; open({str(output)!r}, 'w').write(os.environ['GREETING'])"],
        )
        await resource.configure("GREETING", "hello")
        await resource.start()
        assert await ReadinessPoller(RetryPolicy(count=50, interval_ms=100)).wait_for_stop(resource)
        assert output.read_text() == "hello"

    @pytest.mark.asyncio
    async def test_ignored_sigterm_escalates(self):
        script = "import signal, time; signal.signal(signal.SIGTERM, signal.SIG_IGN); print('ready', flush=True); time.sleep(30)"
        resource = SubprocessResource(command=[sys.executable, "-c", script], stop_grace_seconds=0.2)
        await resource.start()
        await asyncio.sleep(0.5)
        await resource.stop()
        assert await resource.is_stopped()
        assert resource.returncode == -9

    @pytest.mark.asyncio
    async def test_stop_kills_group_that_traps_sigterm(self):
        resource = SubprocessResource(
            command=["sh", "-c", "trap '' TERM; while true; do sleep 0.1; done"],
            stop_grace_seconds=0.3,
        )
        await resource.start()
        await asyncio.sleep(0.3)
        await resource.stop()
        assert await resource.is_stopped()
        assert resource.returncode == -9

    @pytest.mark.asyncio
    async def test_signals_ignored_when_not_running(self, caplog):
        resource = SubprocessResource(command=SLEEPER)
        await resource.pause()
        await resource.stop()
        assert "process is not running" in caplog.text
