"""Wire helpers for the remote traffic multicast channel.

All communication is UDP multicast on the group the simulator itself uses
(239.255.1.1), but on a separate port (49788). Every datagram starts with a
fixed 8-byte header:

    byte 0    low nibble = message type, high nibble = message version
    byte 1    reserved
    bytes 2-3 sender plugin id (uint16, little endian)
    bytes 4-7 reserved

The body after the header belongs to the data-application layer and is passed
through untouched.
"""

from __future__ import annotations

import enum
import logging
import socket
import struct
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_GROUP = "239.255.1.1"
DEFAULT_PORT = 49788

HEADER = struct.Struct("<BBHI")
HEADER_SIZE = HEADER.size  # 8

BEACON_VERSION = 1

Address = tuple[str, int]


class RemoteNetworkError(Exception):
    """Multicast socket could not be opened, bound or joined."""


class MalformedDatagram(ValueError):
    """Datagram too short to carry the fixed header."""


class MessageType(enum.IntEnum):
    # Known types; any other nibble still counts as sender traffic
    INTEREST_BEACON = 0
    SEND_REQUEST = 1
    SETTINGS = 2
    OBJECT_DETAILS = 3
    POSITION_UPDATE = 4
    ANIMATION = 5
    OBJECT_REMOVE = 6


_KNOWN_TYPES = frozenset(t.value for t in MessageType)


@dataclass(frozen=True)
class MessageHeader:
    msg_type: int
    version: int
    plugin_id: int = 0

    @property
    def is_beacon(self) -> bool:
        return self.msg_type == MessageType.INTEREST_BEACON


def encode_header(msg_type: int, version: int, plugin_id: int = 0) -> bytes:
    if not 0 <= version <= 0x0F:
        raise ValueError(f"message version out of range: {version}")
    return HEADER.pack((int(msg_type) & 0x0F) | (version << 4), 0, plugin_id, 0)


def parse_header(data: bytes) -> MessageHeader:
    """Decode the fixed header at the start of *data*.

    Known type numbers come back as :class:`MessageType`, others as plain
    ints. Raises :class:`MalformedDatagram` for truncated buffers.
    """
    if len(data) < HEADER_SIZE:
        raise MalformedDatagram(f"datagram too short ({len(data)} < {HEADER_SIZE} bytes)")
    first, _reserved, plugin_id, _filler = HEADER.unpack_from(data)
    msg_type: int = first & 0x0F
    if msg_type in _KNOWN_TYPES:
        msg_type = MessageType(msg_type)
    return MessageHeader(msg_type=msg_type, version=first >> 4, plugin_id=plugin_id)


def beacon_message() -> bytes:
    """The interest beacon: a bare header, no body."""
    return encode_header(MessageType.INTEREST_BEACON, BEACON_VERSION)


# ── Sockets ───────────────────────────────────────────────────────


def open_sender_socket(
    group: str = DEFAULT_GROUP,
    port: int = DEFAULT_PORT,
    interface: str = "0.0.0.0",
    ttl: int = 8,
) -> socket.socket:
    """Create a non-blocking UDP socket set up for sending to *group*."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    try:
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, ttl)
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1)
        if interface and interface != "0.0.0.0":
            sock.setsockopt(
                socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(interface)
            )
        sock.connect((group, port))
        sock.setblocking(False)
    except OSError as exc:
        sock.close()
        raise RemoteNetworkError(
            f"cannot open beacon socket for {group}:{port}: {exc}"
        ) from exc
    return sock


def open_receiver_socket(
    group: str = DEFAULT_GROUP,
    port: int = DEFAULT_PORT,
    interface: str = "0.0.0.0",
) -> socket.socket:
    """Create a non-blocking UDP socket bound to *port* and joined to *group*."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if hasattr(socket, "SO_REUSEPORT"):
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            except OSError:
                # Not supported on every platform; SO_REUSEADDR is enough there
                logger.debug("SO_REUSEPORT not available")
        sock.bind(("", port))
        mreq = struct.pack(
            "4s4s", socket.inet_aton(group), socket.inet_aton(interface or "0.0.0.0")
        )
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)
        sock.setblocking(False)
    except OSError as exc:
        sock.close()
        raise RemoteNetworkError(
            f"cannot join multicast group {group}:{port}: {exc}"
        ) from exc
    return sock
