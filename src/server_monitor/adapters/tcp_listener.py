import asyncio
import errno
import logging
import socket
import struct
from collections.abc import Awaitable

from server_monitor.domain.command import (
    AuthFailure,
    Command,
    Configure,
    Continue,
    Pause,
    Resume,
    Stop,
    decode,
    strip_line,
)
from server_monitor.log_format import EVENT_AUTH_FAILURE, EVENT_SESSION
from server_monitor.ports.resource import ControlledResource

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "localhost"
BACKLOG = 1
DEFAULT_SESSION_TIMEOUT = 5.0

BIND_ERRNOS = frozenset({errno.EADDRINUSE, errno.EADDRNOTAVAIL, errno.EACCES})


def resolve_local_host() -> str:
    try:
        return socket.gethostbyname(socket.gethostname())
    except socket.gaierror:
        return LOOPBACK_HOST


def disable_linger(sock: socket.socket) -> None:
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 0, 0))


class MonitorListener:
    def __init__(
        self,
        key: str,
        port: int,
        session_timeout: float = DEFAULT_SESSION_TIMEOUT,
        logger: logging.Logger = logger,
    ) -> None:
        self._key = key
        self._port = port
        self._session_timeout = session_timeout
        self._logger = logger
        self._socket: socket.socket | None = None

    @property
    def port(self) -> int:
        return self._port

    @property
    def address(self) -> tuple[str, int] | None:
        if self._socket is None:
            return None
        return self._socket.getsockname()

    def bind(self) -> socket.socket:
        """Bind the listening socket, falling back to the loopback host.

        Raises OSError when neither address can be bound, OverflowError for
        a port outside 0-65535.
        """
        host = resolve_local_host()
        try:
            sock = self._bind_to(host)
        except OSError as exc:
            if exc.errno not in BIND_ERRNOS or host == LOOPBACK_HOST:
                raise
            self._logger.debug("Cannot bind to %s:%d (%s), trying %s", host, self._port, exc, LOOPBACK_HOST)
            sock = self._bind_to(LOOPBACK_HOST)
        self._socket = sock
        return sock

    def _bind_to(self, host: str) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, self._port))
            sock.listen(BACKLOG)
            sock.setblocking(False)
        except (OSError, OverflowError):
            sock.close()
            raise
        return sock

    def close(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None

    async def serve(self, resource: ControlledResource) -> bool:
        """Run the accept loop until a stop command is dispatched.

        Returns True when the loop ended because of a stop command and False
        when the listening socket failed or was closed.
        """
        if self._socket is None:
            raise RuntimeError("Listener is not bound")
        loop = asyncio.get_running_loop()
        while True:
            self._logger.info("Waiting for command from client")
            try:
                client, _ = await loop.sock_accept(self._socket)
            except OSError as exc:
                self._logger.error("Error in the monitor", exc_info=exc)
                return False
            self._logger.info("Receiving command from client", extra={"event": EVENT_SESSION})
            try:
                if not await self._handle_session(client, resource):
                    return True
            except OSError as exc:
                self._logger.error("Error in the monitor", exc_info=exc)
            finally:
                client.close()

    async def _handle_session(self, client: socket.socket, resource: ControlledResource) -> bool:
        disable_linger(client)
        command = await self._read_command(client)
        if isinstance(command, AuthFailure):
            self._logger.error("Invalid monitor key", extra={"event": EVENT_AUTH_FAILURE})
            return True
        return await self.dispatch(resource, command)

    async def _read_command(self, client: socket.socket) -> Command | AuthFailure:
        reader, writer = await asyncio.open_connection(sock=client)
        try:
            key_line = await self._read_line(reader)
            command_line = None
            if key_line == self._key:
                command_line = await self._read_line(reader)
            return decode(key_line, command_line, self._key)
        finally:
            writer.close()

    async def _read_line(self, reader: asyncio.StreamReader) -> str | None:
        try:
            raw = await asyncio.wait_for(reader.readline(), timeout=self._session_timeout)
        except asyncio.TimeoutError as exc:
            raise TimeoutError("Timed out reading command from client") from exc
        except ValueError as exc:
            # StreamReader.readline reports an over-long line this way
            raise OSError("Command line from client is too long") from exc
        return strip_line(raw)

    async def dispatch(self, resource: ControlledResource, command: Command) -> bool:
        """Apply a command to the resource. Returns False once the loop should exit."""
        match command:
            case Configure(name=name, value=value):
                await self._invoke(resource.configure(name, value), command)
            case Pause():
                await self._invoke(resource.pause(), command)
            case Resume():
                await self._invoke(resource.resume(), command)
            case Stop():
                await self._invoke(resource.stop(), command)
                return False
            case Continue():
                pass
        return True

    async def _invoke(self, call: Awaitable[None], command: Command) -> None:
        try:
            await call
        except Exception:
            self._logger.exception("Resource failed to handle %s", type(command).__name__.lower())
