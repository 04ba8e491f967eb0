import logging
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

ENV_FILE_PATH = Path.home() / ".config" / "server-monitor" / "env"


class MonitorConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SERVER_MONITOR_",
        env_file=ENV_FILE_PATH,
        extra="ignore",
        validate_assignment=True,
    )

    key: str = ""
    key_file: Path | None = None
    port: int = 10000

    retry_count: int = 3
    retry_interval_ms: int = 500
    session_timeout: float = 5.0

    daemon: bool = False

    resource_type: str = "noop"
    resource_config: dict[str, str] = {}

    log_file: str = ""

    @field_validator("port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        if not 1 <= value <= 65535:
            raise ValueError(f"port must be between 1 and 65535, got {value}")
        return value

    @field_validator("retry_count")
    @classmethod
    def _check_retry_count(cls, value: int) -> int:
        if value < 1:
            raise ValueError("retry_count must be positive")
        return value

    @field_validator("retry_interval_ms")
    @classmethod
    def _check_retry_interval(cls, value: int) -> int:
        if value < 0:
            raise ValueError("retry_interval_ms must not be negative")
        return value

    def resolve_key(self) -> str:
        """The literal key if set, else the first line of ``key_file``."""
        if self.key or self.key_file is None:
            return self.key
        try:
            lines = self.key_file.read_text().splitlines()
        except FileNotFoundError:
            logger.warning("Monitor key file %s does not exist", self.key_file)
            return ""
        return lines[0].strip() if lines else ""
