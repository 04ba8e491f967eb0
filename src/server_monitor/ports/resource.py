import logging
from collections.abc import Callable
from typing import Protocol


class ControlledResource(Protocol):
    async def configure(self, name: str, value: str) -> None: ...
    async def start(self) -> None: ...
    async def stop(self) -> None: ...
    async def pause(self) -> None: ...
    async def resume(self) -> None: ...
    async def is_started(self) -> bool: ...
    async def is_stopped(self) -> bool: ...


class MonitorObserver(Protocol):
    def started(self, resource: ControlledResource, logger: logging.Logger) -> None: ...
    def stopped(self, resource: ControlledResource, logger: logging.Logger) -> None: ...


ResourceFactory = Callable[[], ControlledResource]
