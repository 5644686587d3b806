"""Activation controller: the single entry point for the remote client.

Owns the beacon sender, the traffic listener and the liveness check, and
exposes the activation boundary used by menus and other UI layers:
``activate()``, ``deactivate()``, ``toggle()`` and ``get_status()``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from .beacon import BeaconSender
from .config import RemoteConfig
from .listener import DataCallback, TrafficListener
from .protocol import RemoteNetworkError
from .registry import SenderSession, SessionRegistry
from .status import Status, StatusCallback, StatusStateMachine

logger = logging.getLogger(__name__)


class ActivationController:
    """Turns discovery on and off and reports the receive status."""

    def __init__(
        self,
        config: RemoteConfig | None = None,
        on_data: DataCallback | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or RemoteConfig()
        self.config.validate()
        self.registry = SessionRegistry(clock)
        self.machine = StatusStateMachine(self.registry, self.config.liveness_timeout)
        self.beacon = BeaconSender(self.config)
        self.listener = TrafficListener(self.config, self.machine, on_data)

        self._active = False
        self._op_lock = asyncio.Lock()
        self._liveness_task: asyncio.Task | None = None

    # ── Activation boundary ───────────────────────────────────────

    @property
    def active(self) -> bool:
        with self.machine.lock:
            return self._active

    def get_status(self) -> Status:
        """Current status; safe from any thread, never touches the network."""
        return self.machine.status

    def on_change(self, callback: StatusCallback) -> None:
        self.machine.on_change(callback)

    def sessions(self) -> list[SenderSession]:
        with self.machine.lock:
            return self.registry.snapshot()

    async def activate(self) -> None:
        """Start listening and beaconing.

        No-op when already active. Raises :class:`RemoteNetworkError` if the
        multicast sockets cannot be set up; status then stays INACTIVE.
        """
        async with self._op_lock:
            await self._activate()

    async def deactivate(self) -> None:
        """Stop everything and forget all senders. Idempotent."""
        async with self._op_lock:
            await self._deactivate()

    async def toggle(self) -> Status:
        """Deactivate if active, activate otherwise; return the new status."""
        async with self._op_lock:
            if self._active:
                await self._deactivate()
            else:
                await self._activate()
        return self.get_status()

    # ── Internal ──────────────────────────────────────────────────

    async def _activate(self) -> None:
        if self._active:
            return
        with self.machine.lock:
            self.registry.clear()
        try:
            await self.listener.start()
            await self.beacon.start()
        except RemoteNetworkError:
            logger.error("Activation failed, multicast group not available")
            await self._stop_components()
            raise
        self.machine.activate(lambda: self._set_active(True))
        self._liveness_task = asyncio.create_task(
            self._liveness_loop(), name="remote-liveness"
        )
        logger.info("Remote client activated")

    async def _deactivate(self) -> None:
        was_active = self._active
        self.machine.deactivate(lambda: self._set_active(False))
        await self._stop_components()
        if was_active:
            logger.info("Remote client deactivated")

    def _set_active(self, active: bool) -> None:
        # Called by the state machine while it holds its lock
        self._active = active

    async def _stop_components(self) -> None:
        task, self._liveness_task = self._liveness_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self.beacon.stop()
        await self.listener.stop()

    async def _liveness_loop(self) -> None:
        """Evict silent senders on a fixed tick, independent of traffic."""
        interval = self.config.liveness_check_interval
        while True:
            await asyncio.sleep(interval)
            try:
                self.machine.check_liveness()
            except Exception:
                logger.exception("Liveness check failed")
