import re
from dataclasses import dataclass

CONFIGURE_PATTERN = re.compile(r"configure\s+(\w+)=(.*)")

PAUSE = "pause"
RESUME = "resume"
STOP = "stop"


@dataclass(frozen=True)
class Configure:
    name: str
    value: str


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class Resume:
    pass


@dataclass(frozen=True)
class Stop:
    pass


@dataclass(frozen=True)
class Continue:
    pass


@dataclass(frozen=True)
class AuthFailure:
    key: str | None = None


Command = Configure | Pause | Resume | Stop | Continue


def decode_command(line: str) -> Command:
    match = CONFIGURE_PATTERN.fullmatch(line)
    if match:
        return Configure(name=match.group(1), value=match.group(2))
    if line == PAUSE:
        return Pause()
    if line == RESUME:
        return Resume()
    if line == STOP:
        return Stop()
    return Continue()


def authenticate(key_line: str | None, expected_key: str) -> bool:
    return key_line is not None and key_line == expected_key


def decode(
    key_line: str | None,
    command_line: str | None,
    expected_key: str,
) -> Command | AuthFailure:
    """Classify one session's two lines.

    A missing command line (client closed after sending the key) is
    treated as an unrecognised command.
    """
    if not authenticate(key_line, expected_key):
        return AuthFailure(key=key_line)
    if command_line is None:
        return Continue()
    return decode_command(command_line)


def encode(key: str, command: str) -> bytes:
    for label, text in (("key", key), ("command", command)):
        if "\n" in text or "\r" in text:
            raise ValueError(f"Monitor {label} must be a single line: {text!r}")
    return f"{key}\n{command}\n".encode()


def strip_line(raw: bytes) -> str | None:
    if not raw:
        return None
    return raw.decode(errors="replace").rstrip("\r\n")
