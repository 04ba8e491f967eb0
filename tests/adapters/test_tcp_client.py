import asyncio

import pytest

from server_monitor.adapters.tcp_client import MonitorClient, send_command
from tests.conftest import TEST_KEY, count_messages


class ReceivingServer:
    def __init__(self) -> None:
        self.payloads: list[bytes] = []
        self._received = asyncio.Event()

    async def handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.payloads.append(await reader.read())
        self._received.set()
        writer.close()

    async def wait(self) -> None:
        await asyncio.wait_for(self._received.wait(), timeout=5.0)


class TestMonitorClient:
    @pytest.mark.asyncio
    async def test_sends_key_and_command(self, free_port, loopback_host, log_capture):
        receiver = ReceivingServer()
        server = await asyncio.start_server(receiver.handle, "127.0.0.1", free_port)
        async with server:
            await MonitorClient(TEST_KEY, free_port).send_command("configure debug=off")
            await receiver.wait()
        assert receiver.payloads == [b"test\nconfigure debug=off\n"]
        assert count_messages(log_capture, 'Sending command "configure debug=off" to monitor') == 1

    @pytest.mark.asyncio
    async def test_static_helper(self, free_port, loopback_host):
        receiver = ReceivingServer()
        server = await asyncio.start_server(receiver.handle, "127.0.0.1", free_port)
        async with server:
            await send_command(TEST_KEY, free_port, "stop")
            await receiver.wait()
        assert receiver.payloads == [b"test\nstop\n"]

    @pytest.mark.asyncio
    async def test_refused_on_resolved_host_retries_loopback(self, free_port, monkeypatch):
        monkeypatch.setattr(
            "server_monitor.adapters.tcp_client.resolve_local_host",
            lambda: "127.0.0.2",
        )
        receiver = ReceivingServer()
        server = await asyncio.start_server(receiver.handle, "127.0.0.1", free_port)
        async with server:
            await send_command(TEST_KEY, free_port, "pause")
            await receiver.wait()
        assert receiver.payloads == [b"test\npause\n"]

    @pytest.mark.asyncio
    async def test_no_listener_is_logged_not_raised(self, free_port, loopback_host, log_capture):
        await MonitorClient(TEST_KEY, free_port).send_command("stop")
        errors = [r for r in log_capture.records if r.getMessage() == "Error sending command to monitor"]
        assert len(errors) == 1
        assert isinstance(errors[0].exc_info[1], OSError)

    @pytest.mark.asyncio
    async def test_multiline_command_is_logged_not_sent(self, free_port, loopback_host, log_capture):
        await MonitorClient(TEST_KEY, free_port).send_command("stop\nstop")
        assert count_messages(log_capture, "Error sending command to monitor") == 1

    @pytest.mark.asyncio
    async def test_out_of_range_port_is_logged_not_raised(self, loopback_host, log_capture):
        await MonitorClient(TEST_KEY, 70000).send_command("stop")
        assert count_messages(log_capture, "Error sending command to monitor") == 1
