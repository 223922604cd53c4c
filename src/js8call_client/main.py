from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path

import dotenv
import uvloop

from js8call_client.client import JS8CallClient
from js8call_client.const import JS8CALL_DEBUG, JS8CALL_METRICS_PORT, JS8CALL_VERSION, LOG_FORMATTER
from js8call_client.correlation import trace_context
from js8call_client.events import Event, EventKind
from js8call_client.logging_abstraction import get_logger, set_package_level
from js8call_client.metrics import start_metrics_server
from js8call_client.structs import ClientSettings
from js8call_client.transport.exceptions import JS8ConnectionError
from js8call_client.transport.retry_policy import BackoffPolicy, FixedDelayPolicy, ReconnectPolicy

logger = get_logger(__name__)

# asyncio reports unretrieved task errors through its own logger
_asyncio_handler = logging.StreamHandler(sys.stderr)
_asyncio_handler.setFormatter(LOG_FORMATTER)
asyncio_logger = logging.getLogger("asyncio")
asyncio_logger.setLevel(logging.WARNING)
asyncio_logger.propagate = False
asyncio_logger.addHandler(_asyncio_handler)

MONITORED_KINDS = (
    EventKind.CONNECTED,
    EventKind.DISCONNECTED,
    EventKind.INCOMING_TEXT,
    EventKind.CALL_ACTIVITY,
    EventKind.BAND_ACTIVITY,
    EventKind.STATION_CALLSIGN,
    EventKind.RIG_FREQUENCY,
)


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="js8call-client", description="JS8Call TCP API client")
    parser.add_argument("--host", default=None, help="JS8Call API host (env: JS8CALL_HOST)")
    parser.add_argument("--port", type=int, default=None, help="JS8Call API port (env: JS8CALL_PORT)")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for a command reply (env: JS8CALL_REQUEST_TIMEOUT)",
    )
    parser.add_argument(
        "--backoff",
        action="store_true",
        help="Reconnect with exponential backoff instead of a fixed delay",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Serve Prometheus metrics on this port (env: JS8CALL_METRICS_PORT)",
    )
    parser.add_argument("-D", "--debug", action="store_true", help="Enable debug mode")
    _ = parser.add_argument("--env", help="Path to the environment file", default=None, type=Path)

    subparsers = parser.add_subparsers(dest="command", required=True)
    _ = subparsers.add_parser("monitor", help="Print every event as a JSON line until interrupted")
    _ = subparsers.add_parser("info", help="Print station callsign, grid and frequency")
    _ = subparsers.add_parser("ping", help="Send PING and report whether JS8Call answered")
    send_parser = subparsers.add_parser("send", help="Transmit a message")
    send_parser.add_argument("text", help="Message text")
    send_parser.add_argument("--to", default=None, help="Callsign or group to address")

    return parser.parse_args(argv)


def load_env_file(env_file: Path) -> None:
    env_path = env_file.expanduser().resolve()
    if not env_path.exists():
        logger.error("Environment file not found", extra={"path": str(env_path)})
        return
    if dotenv.load_dotenv(env_path, override=True):
        logger.info("Environment variables loaded", extra={"source": str(env_path)})
    else:
        logger.warning("No environment variables loaded from file", extra={"path": str(env_path)})


def build_settings(args: argparse.Namespace) -> ClientSettings:
    settings = ClientSettings.from_env()
    overrides: dict[str, object] = {}
    if args.host:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.timeout is not None:
        overrides["request_timeout"] = args.timeout
    return settings.model_copy(update=overrides)


def build_policy(args: argparse.Namespace, settings: ClientSettings) -> ReconnectPolicy:
    if args.backoff:
        return BackoffPolicy(base_delay_seconds=max(settings.reconnect_delay, 0.1))
    return FixedDelayPolicy(settings.reconnect_delay)


def event_to_json(event: Event) -> str:
    record: dict[str, object] = {"event": event.kind.value}
    if event.message is not None:
        record["message"] = event.message.to_dict()
    return json.dumps(record, default=str)


async def run_monitor(client: JS8CallClient) -> None:
    for kind in MONITORED_KINDS:
        _ = client.subscribe(kind, lambda event: print(event_to_json(event), flush=True))

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    await client.connect()
    try:
        await stop.wait()
    finally:
        logger.info("Stopping monitor")


async def run_command(args: argparse.Namespace, client: JS8CallClient) -> int:
    if args.command == "monitor":
        await run_monitor(client)
        return 0

    async with client:
        if args.command == "info":
            info = await client.get_station_info()
            print(info.model_dump_json())
        elif args.command == "ping":
            response = await client.send("PING")
            print("answered" if response is not None else "no response")
        elif args.command == "send":
            if args.to:
                await client.send_directed_message(args.to, args.text)
            else:
                await client.send_message(args.text)
    return 0


async def async_main(args: argparse.Namespace) -> int:
    settings = build_settings(args)
    client = JS8CallClient(settings, reconnect_policy=build_policy(args, settings))
    try:
        return await run_command(args, client)
    finally:
        await client.disconnect()


def main(argv: list[str] | None = None) -> int:
    """Entry point for the js8call-client command."""
    args = parse_cli(argv)

    with trace_context():
        if args.env:
            load_env_file(args.env)

        if args.debug or JS8CALL_DEBUG:
            set_package_level(logging.DEBUG)
            logger.info("Debug logging enabled")

        metrics_port = args.metrics_port if args.metrics_port is not None else JS8CALL_METRICS_PORT
        if metrics_port:
            start_metrics_server(metrics_port)
            logger.info("Metrics server started", extra={"port": metrics_port})

        logger.debug("Starting js8call-client", extra={"version": JS8CALL_VERSION, "command": args.command})

        try:
            return uvloop.run(async_main(args))
        except JS8ConnectionError as e:
            logger.error("JS8Call connection error: %s", e.reason)
            return 2
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received, shutting down...")
            return 130


if __name__ == "__main__":
    sys.exit(main())
