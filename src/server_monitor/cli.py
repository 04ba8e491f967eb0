import argparse
import asyncio
import logging
import signal
import sys

from pydantic import ValidationError

from server_monitor.config import MonitorConfig
from server_monitor.log_format import configure_logging

CLIENT_COMMANDS = ("stop", "pause", "resume", "configure", "send")


def _parse_setting(text: str) -> tuple[str, str]:
    name, sep, value = text.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {text!r}")
    return name, value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Control a long-running server over a local TCP monitor")
    parser.add_argument("--key", help="Shared monitor key")
    parser.add_argument("--port", type=int, help="Monitor port")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Start a server and listen for commands")
    run_parser.add_argument("--type", dest="resource_type", help="Resource type to run")
    run_parser.add_argument(
        "--set",
        dest="settings",
        type=_parse_setting,
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Configure the resource before it starts (repeatable)",
    )
    run_parser.add_argument("--daemon", action="store_true", default=None, help="Run the monitor as a background task")

    subparsers.add_parser("stop", help="Stop the server")
    subparsers.add_parser("pause", help="Pause the server")
    subparsers.add_parser("resume", help="Resume the server")

    configure_parser = subparsers.add_parser("configure", help="Set a server property")
    configure_parser.add_argument("setting", type=_parse_setting, metavar="NAME=VALUE")

    send_parser = subparsers.add_parser("send", help="Send a raw command line")
    send_parser.add_argument("text", help="Command text")

    return parser


def client_command_text(args: argparse.Namespace) -> str:
    if args.command == "configure":
        name, value = args.setting
        return f"configure {name}={value}"
    if args.command == "send":
        return args.text
    return args.command


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = {"key": args.key, "port": args.port}
    if args.command == "run":
        overrides.update(resource_type=args.resource_type, daemon=args.daemon)
    try:
        config = MonitorConfig(**{name: value for name, value in overrides.items() if value is not None})
    except ValidationError as exc:
        parser.error(f"invalid settings: {exc}")

    configure_logging(verbose=args.verbose, log_file=config.log_file)

    if not config.resolve_key():
        parser.error("a monitor key is required (--key or SERVER_MONITOR_KEY)")

    if args.command in CLIENT_COMMANDS:
        asyncio.run(_run_client_command(args, config))
    elif args.command == "run":
        asyncio.run(_run_monitor(config, dict(args.settings)))
    else:
        parser.print_help()
        sys.exit(1)


async def _run_client_command(args: argparse.Namespace, config: MonitorConfig) -> None:
    from server_monitor.adapters.tcp_client import send_command

    await send_command(config.resolve_key(), config.port, client_command_text(args))


async def _run_monitor(config: MonitorConfig, overrides: dict[str, str]) -> None:
    from server_monitor.factory import create_monitor, create_registry, create_resource
    from server_monitor.registry import UnknownResourceError

    registry = create_registry()
    try:
        resource = await create_resource(config, registry, overrides)
    except UnknownResourceError as exc:
        logging.error("%s", exc)
        sys.exit(1)

    monitor = create_monitor(config)

    if config.daemon:
        task = await monitor.run_monitor_daemon(resource)
    else:
        task = asyncio.create_task(monitor.run_monitor(resource))

    shutdown_triggered = False

    def handle_signal() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            logging.warning("Forced exit")
            sys.exit(1)
        shutdown_triggered = True
        logging.info("Shutting down...")
        monitor.interrupt()
        task.cancel()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)

    try:
        state = await task
        logging.info("Monitor finished in state %s", state.name)
    except asyncio.CancelledError:
        logging.info("Monitor cancelled")
        await resource.stop()
