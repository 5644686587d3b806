"""Receive status state machine.

States: INACTIVE → WAITING → RECEIVING
                      ↖_________↙

  activate()            INACTIVE  → WAITING
  datagram recorded     WAITING   → RECEIVING
  liveness check empty  RECEIVING → WAITING
  deactivate()          any       → INACTIVE

There is no direct INACTIVE → RECEIVING edge. Registry mutation and status
changes share one lock so that readers on other threads never see a registry
that disagrees with the status.
"""

from __future__ import annotations

import enum
import logging
import threading
from typing import Callable

from .protocol import Address
from .registry import SenderSession, SessionRegistry

logger = logging.getLogger(__name__)


class Status(enum.Enum):
    INACTIVE = "inactive"
    WAITING = "waiting"
    RECEIVING = "receiving"


StatusCallback = Callable[[Status, Status], None]


class StatusStateMachine:
    """Derives the receive status from activation and session freshness."""

    def __init__(self, registry: SessionRegistry, liveness_timeout: float) -> None:
        self.registry = registry
        self.liveness_timeout = liveness_timeout
        self._lock = threading.RLock()
        self._status = Status.INACTIVE
        self._callbacks: list[StatusCallback] = []

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def status(self) -> Status:
        with self._lock:
            return self._status

    def on_change(self, callback: StatusCallback) -> None:
        """Register ``callback(old, new)`` for every status transition."""
        self._callbacks.append(callback)

    # ── Transitions ───────────────────────────────────────────────

    def activate(self, locked: Callable[[], None] | None = None) -> None:
        """Enter WAITING; *locked* runs under the state lock with the transition."""
        with self._lock:
            if locked is not None:
                locked()
            if self._status is not Status.INACTIVE:
                return
            self.registry.clear()
            change = self._set(Status.WAITING)
        self._notify(change)

    def deactivate(self, locked: Callable[[], None] | None = None) -> None:
        with self._lock:
            if locked is not None:
                locked()
            self.registry.clear()
            change = self._set(Status.INACTIVE)
        self._notify(change)

    def record_datagram(
        self, address: Address, message_type: int | None = None
    ) -> SenderSession | None:
        """Upsert the session for *address*; None while inactive."""
        with self._lock:
            if self._status is Status.INACTIVE:
                return None
            session = self.registry.touch(address, message_type)
            is_new = session.datagrams == 1
            change = self._set(Status.RECEIVING)
        if is_new:
            logger.info("New traffic source %s:%d", *address)
        self._notify(change)
        return session

    def check_liveness(self) -> list[SenderSession]:
        """Evict stale sessions; fall back to WAITING when none are left."""
        with self._lock:
            if self._status is Status.INACTIVE:
                return []
            expired = self.registry.evict_expired(self.liveness_timeout)
            change = None
            if self._status is Status.RECEIVING and not self.registry:
                change = self._set(Status.WAITING)
        for session in expired:
            logger.info(
                "Traffic source %s:%d silent for more than %.1fs, dropped",
                *session.address, self.liveness_timeout,
            )
        self._notify(change)
        return expired

    # ── Internal ──────────────────────────────────────────────────

    def _set(self, new: Status) -> tuple[Status, Status] | None:
        old = self._status
        if old is new:
            return None
        self._status = new
        return old, new

    def _notify(self, change: tuple[Status, Status] | None) -> None:
        if change is None:
            return
        old, new = change
        logger.info("Status %s → %s", old.value, new.value)
        for cb in self._callbacks:
            try:
                cb(old, new)
            except Exception:
                logger.exception("Error in status callback")
