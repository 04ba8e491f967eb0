import logging

logger = logging.getLogger(__name__)


class BaseResource:
    """A resource with no behaviour beyond tracking its own lifecycle.

    Subclasses override the hooks they need. Used directly as the ``noop``
    resource type.
    """

    def __init__(self) -> None:
        self._started = False
        self._paused = False
        self._settings: dict[str, str] = {}

    @property
    def settings(self) -> dict[str, str]:
        return dict(self._settings)

    @property
    def paused(self) -> bool:
        return self._paused

    async def configure(self, name: str, value: str) -> None:
        logger.info("Configure %s=%s", name, value)
        self._settings[name] = value

    async def start(self) -> None:
        self._started = True
        self._paused = False

    async def stop(self) -> None:
        self._started = False
        self._paused = False

    async def pause(self) -> None:
        self._paused = True

    async def resume(self) -> None:
        self._paused = False

    async def is_started(self) -> bool:
        return self._started

    async def is_stopped(self) -> bool:
        return not self._started
