import logging
from collections.abc import Iterable, Mapping
from importlib.metadata import entry_points

from server_monitor.ports.resource import ControlledResource, ResourceFactory

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "server_monitor.resources"


class UnknownResourceError(KeyError):
    def __init__(self, name: str, available: Iterable[str]) -> None:
        self.name = name
        self.available = sorted(available)
        super().__init__(name)

    def __str__(self) -> str:
        known = ", ".join(self.available) or "none"
        return f"No resource type named '{self.name}' (available: {known})"


class ResourceRegistry:
    """Resource factories keyed by type name, built once and passed in explicitly."""

    def __init__(self, factories: Mapping[str, ResourceFactory] | None = None) -> None:
        self._factories: dict[str, ResourceFactory] = dict(factories or {})

    def register(self, name: str, factory: ResourceFactory) -> None:
        if name in self._factories:
            logger.warning("Replacing resource factory '%s'", name)
        self._factories[name] = factory

    def get_factory(self, name: str) -> ResourceFactory:
        try:
            return self._factories[name]
        except KeyError:
            raise UnknownResourceError(name, self._factories) from None

    def create(self, name: str) -> ControlledResource:
        return self.get_factory(name)()

    def names(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __len__(self) -> int:
        return len(self._factories)

    @classmethod
    def from_entry_points(cls, group: str = ENTRY_POINT_GROUP) -> "ResourceRegistry":
        registry = cls()
        for entry_point in entry_points(group=group):
            try:
                factory = entry_point.load()
            except Exception:
                logger.exception("Failed to load resource factory '%s'", entry_point.name)
                continue
            registry.register(entry_point.name, factory)
        logger.debug("Discovered %d resource factories in '%s'", len(registry), group)
        return registry
