"""Traffic remote client entry point.

Usage:
    python -m traffic_remote [--config CONFIG_PATH] [--http-port PORT]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from .config import RemoteConfig
from .controller import ActivationController
from .protocol import Address, RemoteNetworkError
from .status import Status

logger = logging.getLogger("traffic_remote")

SUMMARY_INTERVAL = 60.0


def _log_payload(payload: bytes, address: Address) -> None:
    logger.debug("%d bytes from %s:%d", len(payload), *address)


async def _summary_loop(controller: ActivationController) -> None:
    while True:
        await asyncio.sleep(SUMMARY_INTERVAL)
        sessions = controller.sessions()
        if sessions:
            logger.info(
                "Receiving from %d source(s): %s",
                len(sessions),
                ", ".join(f"{s.address[0]}:{s.address[1]} ({s.datagrams})" for s in sessions),
            )


async def run(config: RemoteConfig, http_port: int | None = None) -> int:
    controller = ActivationController(config, on_data=_log_payload)

    def _on_change(old: Status, new: Status) -> None:
        if new is Status.WAITING and old is Status.RECEIVING:
            logger.warning("All traffic sources went silent, waiting for data")

    controller.on_change(_on_change)

    if config.auto_activate:
        try:
            await controller.activate()
        except RemoteNetworkError as exc:
            logger.error("Could not activate: %s", exc)
            if http_port is None:
                return 1

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            pass

    tasks = [asyncio.create_task(_summary_loop(controller))]
    server = None
    if http_port is not None:
        import uvicorn

        from .api import create_app

        server = uvicorn.Server(uvicorn.Config(
            create_app(controller), host="0.0.0.0", port=http_port, log_level="warning",
        ))
        # We own the signals, not uvicorn
        server.install_signal_handlers = lambda: None
        tasks.append(asyncio.create_task(server.serve()))
        logger.info("HTTP control surface on port %d", http_port)

    try:
        await stop.wait()
    finally:
        logger.info("Shutting down remote client...")
        if server is not None:
            server.should_exit = True
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await controller.deactivate()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Remote traffic client")
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to config.json (default: ~/.traffic-remote/config.json)",
    )
    parser.add_argument("--group", default=None, help="Multicast group (overrides config)")
    parser.add_argument("--port", type=int, default=None, help="UDP port (overrides config)")
    parser.add_argument(
        "--interface",
        default=None,
        help="Local interface address for multicast (overrides config)",
    )
    parser.add_argument(
        "--http-port",
        type=int,
        default=None,
        help="Serve the HTTP control surface on this port",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args()

    config_path = args.config
    if config_path is None:
        candidate = Path.home() / ".traffic-remote" / "config.json"
        if candidate.exists():
            config_path = str(candidate)

    try:
        config = RemoteConfig.load(config_path) if config_path else RemoteConfig()
    except ValueError as exc:
        parser.error(f"invalid config: {exc}")

    # CLI overrides
    if args.group:
        config.multicast_group = args.group
    if args.port:
        config.port = args.port
    if args.interface:
        config.interface = args.interface

    level = logging.DEBUG if args.debug else config.logging_level
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    if config_path:
        logger.info("Loaded config from %s", config_path)
    else:
        logger.info("No config found, using defaults")

    try:
        config.validate()
    except ValueError as exc:
        parser.error(str(exc))

    sys.exit(asyncio.run(run(config, args.http_port)))


if __name__ == "__main__":
    main()
