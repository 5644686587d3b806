"""Beacon of interest sender.

Traffic sources stay silent until somebody on the network shows interest.
While the client is active we keep sending a small interest datagram to the
multicast group so that sources joining later still find us.
"""

from __future__ import annotations

import asyncio
import logging

from .config import RemoteConfig
from .protocol import RemoteNetworkError, beacon_message, open_sender_socket

logger = logging.getLogger(__name__)


class _BeaconProtocol(asyncio.DatagramProtocol):
    def error_received(self, exc: Exception) -> None:
        logger.warning("Beacon send failed: %s", exc)


class BeaconSender:
    """Periodically multicasts the interest beacon."""

    def __init__(self, config: RemoteConfig) -> None:
        self.config = config
        self.beacons_sent = 0
        self._message = beacon_message()
        self._transport: asyncio.DatagramTransport | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Open the multicast socket and start the send loop.

        Raises :class:`RemoteNetworkError` when the socket cannot be set up.
        """
        if self.running:
            return
        cfg = self.config
        sock = open_sender_socket(cfg.multicast_group, cfg.port, cfg.interface, cfg.ttl)
        loop = asyncio.get_running_loop()
        try:
            self._transport, _ = await loop.create_datagram_endpoint(
                _BeaconProtocol, sock=sock
            )
        except OSError as exc:
            sock.close()
            raise RemoteNetworkError(f"cannot start beacon sender: {exc}") from exc
        self._task = asyncio.create_task(self._send_loop(), name="remote-beacon")
        logger.info(
            "Sending interest beacon to %s:%d every %.1fs",
            cfg.multicast_group, cfg.port, cfg.beacon_interval,
        )

    async def stop(self) -> None:
        """Stop sending and release the socket."""
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._transport is not None:
            self._transport.close()
            self._transport = None
            logger.info("Beacon sender stopped after %d beacons", self.beacons_sent)

    def send_now(self) -> None:
        if self._transport is None or self._transport.is_closing():
            return
        self._transport.sendto(self._message)
        self.beacons_sent += 1
        logger.debug("Interest beacon sent (%d)", self.beacons_sent)

    async def _send_loop(self) -> None:
        while True:
            try:
                self.send_now()
            except Exception:
                logger.exception("Unexpected error sending beacon")
            await asyncio.sleep(self.config.beacon_interval)
