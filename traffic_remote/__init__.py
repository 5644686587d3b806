"""Traffic remote client.

Discovers traffic sources on the simulator network by multicasting a beacon
of interest, tracks which sources are alive, and reports whether data is
flowing (inactive / waiting / receiving).
"""

from .config import RemoteConfig
from .controller import ActivationController
from .protocol import RemoteNetworkError
from .status import Status

__version__ = "0.1.0"

__all__ = ["ActivationController", "RemoteConfig", "RemoteNetworkError", "Status"]
