import asyncio
import logging
import socket

from server_monitor.adapters.tcp_listener import LOOPBACK_HOST, disable_linger, resolve_local_host
from server_monitor.domain.command import encode
from server_monitor.log_format import EVENT_COMMAND_SENT

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 5.0


class MonitorClient:
    def __init__(
        self,
        key: str,
        port: int,
        timeout: float = DEFAULT_CONNECT_TIMEOUT,
        logger: logging.Logger = logger,
    ) -> None:
        self._key = key
        self._port = port
        self._timeout = timeout
        self._logger = logger

    async def send_command(self, command: str) -> None:
        """Deliver one command to the monitor. Failures are logged, never raised."""
        self._logger.info('Sending command "%s" to monitor', command, extra={"event": EVENT_COMMAND_SENT})
        try:
            payload = encode(self._key, command)
            reader, writer = await self._connect()
            try:
                disable_linger(writer.get_extra_info("socket"))
                writer.write(payload)
                await asyncio.wait_for(writer.drain(), timeout=self._timeout)
            finally:
                writer.close()
                await writer.wait_closed()
        except (OSError, OverflowError, asyncio.TimeoutError, ValueError) as exc:
            self._logger.error("Error sending command to monitor", exc_info=exc)

    async def _connect(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        host = resolve_local_host()
        try:
            return await self._open(host)
        except (ConnectionRefusedError, socket.gaierror):
            if host == LOOPBACK_HOST:
                raise
            return await self._open(LOOPBACK_HOST)

    async def _open(self, host: str) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        return await asyncio.wait_for(
            asyncio.open_connection(host, self._port),
            timeout=self._timeout,
        )


async def send_command(
    key: str,
    port: int,
    command: str,
    logger: logging.Logger = logger,
) -> None:
    await MonitorClient(key, port, logger=logger).send_command(command)
