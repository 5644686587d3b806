"""Multicast traffic listener.

Joins the multicast group and receives datagrams from any number of
independent traffic sources. Its only protocol duty is liveness: every valid
datagram refreshes the sender's session before the payload is handed to the
data collaborator. Bad datagrams are dropped; they never stop the receiver.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from .config import RemoteConfig
from .protocol import (
    Address,
    MalformedDatagram,
    RemoteNetworkError,
    open_receiver_socket,
    parse_header,
)
from .status import StatusStateMachine

logger = logging.getLogger(__name__)

DataCallback = Callable[[bytes, Address], None]


class _ListenerProtocol(asyncio.DatagramProtocol):
    def __init__(self, listener: TrafficListener) -> None:
        self._listener = listener

    def datagram_received(self, data: bytes, addr: tuple) -> None:
        self._listener.datagram_received(data, (addr[0], addr[1]))

    def error_received(self, exc: Exception) -> None:
        logger.debug("Receive error: %s", exc)


class TrafficListener:
    """Receives traffic datagrams and keeps sender sessions fresh."""

    def __init__(
        self,
        config: RemoteConfig,
        machine: StatusStateMachine,
        on_data: DataCallback | None = None,
    ) -> None:
        self.config = config
        self.machine = machine
        self.on_data = on_data
        self.received = 0
        self.dropped = 0
        self._transport: asyncio.DatagramTransport | None = None

    @property
    def running(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    async def start(self) -> None:
        """Join the multicast group and begin receiving.

        Raises :class:`RemoteNetworkError` when bind or join fails.
        """
        if self.running:
            return
        cfg = self.config
        sock = open_receiver_socket(cfg.multicast_group, cfg.port, cfg.interface)
        loop = asyncio.get_running_loop()
        try:
            self._transport, _ = await loop.create_datagram_endpoint(
                lambda: _ListenerProtocol(self), sock=sock
            )
        except OSError as exc:
            sock.close()
            raise RemoteNetworkError(f"cannot start traffic listener: {exc}") from exc
        logger.info("Listening for traffic on %s:%d", cfg.multicast_group, cfg.port)

    async def stop(self) -> None:
        """Close the socket; no datagram is processed afterwards."""
        if self._transport is None:
            return
        self._transport.close()
        self._transport = None
        # Let the loop run the transport's connection_lost before returning
        await asyncio.sleep(0)
        logger.info(
            "Traffic listener stopped (%d received, %d dropped)",
            self.received, self.dropped,
        )

    def datagram_received(self, data: bytes, address: Address) -> None:
        try:
            header = parse_header(data)
        except MalformedDatagram as exc:
            self.dropped += 1
            logger.debug("Dropped datagram from %s:%d: %s", *address, exc)
            return

        # Interest beacons come from other listeners, including ourselves
        if header.is_beacon:
            logger.debug("Ignoring interest beacon from %s:%d", *address)
            return

        session = self.machine.record_datagram(address, int(header.msg_type))
        if session is None:
            return
        self.received += 1

        if self.on_data is not None:
            try:
                self.on_data(data, address)
            except Exception:
                logger.exception("Error in data callback for %s:%d", *address)
