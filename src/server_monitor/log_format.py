"""Console and file logging for the monitor and its client commands.

Log calls tag notable records with ``extra={"event": ...}``; the console
formatter colours those by event and everything else by level.
"""

import logging
import sys

EVENT_TRANSITION = "transition"
EVENT_AUTH_FAILURE = "auth_failure"
EVENT_COMMAND_SENT = "command_sent"
EVENT_SESSION = "session"

# SGR parameters
EVENT_STYLES = {
    EVENT_TRANSITION: "1;36",
    EVENT_AUTH_FAILURE: "1;31",
    EVENT_COMMAND_SENT: "35",
    EVENT_SESSION: "36",
}
LEVEL_STYLES = {
    logging.DEBUG: "2",
    logging.INFO: "32",
    logging.WARNING: "33",
    logging.ERROR: "31",
    logging.CRITICAL: "1;31",
}

FILE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def sgr(text: str, style: str | None) -> str:
    if not style:
        return text
    return f"\033[{style}m{text}\033[0m"


def component(logger_name: str) -> str:
    """``server_monitor.adapters.tcp_listener`` -> ``tcp_listener``."""
    return logger_name.rpartition(".")[2]


class MonitorFormatter(logging.Formatter):
    def __init__(self, color: bool = True, datefmt: str | None = "%H:%M:%S") -> None:
        super().__init__(datefmt=datefmt)
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        event = getattr(record, "event", None)
        level_style = LEVEL_STYLES.get(record.levelno) if self.color else None
        if not self.color:
            message_style = None
        elif event in EVENT_STYLES:
            message_style = EVENT_STYLES[event]
        elif record.levelno == logging.DEBUG or record.levelno >= logging.WARNING:
            message_style = level_style
        else:
            message_style = None

        parts = [
            sgr(self.formatTime(record, self.datefmt), "2" if self.color else None),
            sgr(f"{record.levelname:<7}", level_style),
            f"[{component(record.name)}]",
            sgr(record.getMessage(), message_style),
        ]
        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(verbose: bool = False, log_file: str = "") -> None:
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(MonitorFormatter(color=sys.stderr.isatty()))
    handlers: list[logging.Handler] = [console]
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, handlers=handlers, force=True)
