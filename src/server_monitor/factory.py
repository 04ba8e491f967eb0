import logging

from server_monitor.adapters.base_resource import BaseResource
from server_monitor.adapters.subprocess_resource import SubprocessResource
from server_monitor.config import MonitorConfig
from server_monitor.domain.monitor import Monitor
from server_monitor.ports.resource import ControlledResource
from server_monitor.registry import ResourceRegistry

logger = logging.getLogger(__name__)

BUILTIN_RESOURCES = {
    "noop": BaseResource,
    "subprocess": SubprocessResource,
}


def create_registry(discover: bool = True) -> ResourceRegistry:
    registry = ResourceRegistry(BUILTIN_RESOURCES)
    if discover:
        discovered = ResourceRegistry.from_entry_points()
        for name in discovered.names():
            if name not in BUILTIN_RESOURCES:
                registry.register(name, discovered.get_factory(name))
    return registry


def create_monitor(config: MonitorConfig) -> Monitor:
    return Monitor(
        key=config.resolve_key(),
        port=config.port,
        retry_count=config.retry_count,
        retry_interval_ms=config.retry_interval_ms,
        session_timeout=config.session_timeout,
    )


async def create_resource(
    config: MonitorConfig,
    registry: ResourceRegistry,
    overrides: dict[str, str] | None = None,
) -> ControlledResource:
    resource = registry.create(config.resource_type)
    settings = {**config.resource_config, **(overrides or {})}
    for name, value in settings.items():
        await resource.configure(name, value)
    logger.info("Created %s resource with %d settings", config.resource_type, len(settings))
    return resource
