"""Menu model for the activation toggle.

Holds what a host menu item should show for the current status; drawing the
item is up to the host. A second, disabled item reports whether the host has
granted this client control of AI/TCAS traffic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .controller import ActivationController
from .status import Status

LABELS = {
    Status.INACTIVE: "Activate (currently inactive)",
    Status.WAITING: "Active (waiting for data)",
    Status.RECEIVING: "Active",
}

TRAFFIC_CONTROL_LABEL = "TCAS Control"


@dataclass(frozen=True)
class MenuState:
    label: str
    checked: bool
    enabled: bool = True


def menu_state(status: Status) -> MenuState:
    return MenuState(label=LABELS[status], checked=status is not Status.INACTIVE)


class StatusMenu:
    """Keeps a checkable "Active" item in sync with the controller.

    *has_traffic_control* is the host's query for AI/TCAS control; without
    one the display-only item stays unchecked.
    """

    def __init__(
        self,
        controller: ActivationController,
        has_traffic_control: Callable[[], bool] | None = None,
    ) -> None:
        self.controller = controller
        self.has_traffic_control = has_traffic_control
        self.state = menu_state(controller.get_status())
        controller.on_change(self._on_status_change)

    def label(self) -> str:
        return self.state.label

    def checked(self) -> bool:
        return self.state.checked

    def traffic_control(self) -> MenuState:
        """Display-only item; never enabled, so clicks do not reach it."""
        granted = bool(self.has_traffic_control()) if self.has_traffic_control else False
        return MenuState(label=TRAFFIC_CONTROL_LABEL, checked=granted, enabled=False)

    async def click(self) -> MenuState:
        """Toggle activation; activation errors propagate to the caller."""
        try:
            await self.controller.toggle()
        finally:
            self.refresh()
        return self.state

    def refresh(self) -> MenuState:
        self.state = menu_state(self.controller.get_status())
        return self.state

    def _on_status_change(self, _old: Status, new: Status) -> None:
        self.state = menu_state(new)
