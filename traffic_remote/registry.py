"""Sender session bookkeeping.

One :class:`SenderSession` per source address that has sent us traffic.
The registry itself is not locked: the status state machine owns it and
serializes every access.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, replace
from typing import Callable

from .protocol import Address


@dataclass
class SenderSession:
    """A traffic source seen on the multicast group."""

    address: Address
    first_seen: float
    last_seen: float
    datagrams: int = 1
    last_message_type: int | None = None

    def age(self, now: float) -> float:
        return now - self.last_seen


class SessionRegistry:
    """Source address → :class:`SenderSession`."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._sessions: dict[Address, SenderSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __bool__(self) -> bool:
        return bool(self._sessions)

    def __contains__(self, address: object) -> bool:
        return address in self._sessions

    def get(self, address: Address) -> SenderSession | None:
        return self._sessions.get(address)

    def touch(self, address: Address, message_type: int | None = None) -> SenderSession:
        """Create or refresh the session for *address*.

        ``last_seen`` strictly increases on every call, even when the clock
        has not advanced since the previous datagram.
        """
        now = self._clock()
        session = self._sessions.get(address)
        if session is None:
            session = SenderSession(address=address, first_seen=now, last_seen=now)
            self._sessions[address] = session
        else:
            session.last_seen = max(now, math.nextafter(session.last_seen, math.inf))
            session.datagrams += 1
        session.last_message_type = message_type
        return session

    def now(self) -> float:
        return self._clock()

    def evict_expired(self, timeout: float) -> list[SenderSession]:
        """Drop every session silent for longer than *timeout*; return them."""
        now = self._clock()
        expired = [s for s in self._sessions.values() if s.age(now) > timeout]
        for session in expired:
            del self._sessions[session.address]
        return expired

    def clear(self) -> None:
        self._sessions.clear()

    def snapshot(self) -> list[SenderSession]:
        """Copies of all sessions, safe to hand to other threads."""
        return [replace(s) for s in self._sessions.values()]
