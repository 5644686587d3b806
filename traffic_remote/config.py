"""Configuration for the traffic remote client."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

from .protocol import DEFAULT_GROUP, DEFAULT_PORT

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Keys a host may still query by name (see RemoteConfig.host_pref)
PREF_REPLACE_DATAREFS = "model_replace_datarefs"
PREF_REPLACE_TEXTURES = "model_replace_textures"
PREF_CLAMP_ALL = "planes_clamp_all"
PREF_HANDLE_DUP_ID = "planes_handle_dup_id"
PREF_SUPPORT_REMOTE = "planes_support_remote"
PREF_LOG_LEVEL = "debug_log_level"
PREF_MODEL_MATCHING = "debug_model_matching"

# Host log levels are numeric, most verbose first
_HOST_LOG_LEVELS = {"DEBUG": 0, "INFO": 1, "WARNING": 2, "ERROR": 3, "CRITICAL": 4}


def _is_number(value, integral: bool = False) -> bool:
    # JSON booleans are ints to Python; reject them here
    if isinstance(value, bool):
        return False
    return isinstance(value, int) if integral else isinstance(value, (int, float))


@dataclass
class RemoteConfig:
    """Remote client configuration, loaded from config.json."""

    # Network
    multicast_group: str = DEFAULT_GROUP
    port: int = DEFAULT_PORT
    interface: str = "0.0.0.0"
    ttl: int = 8

    # Timing (seconds)
    beacon_interval: float = 3.0
    liveness_timeout: float = 10.0
    liveness_check_interval: float = 1.0

    # Lifecycle
    auto_activate: bool = True

    # Passthrough values for the model/rendering layer, no protocol effect
    log_level: str = "INFO"
    replace_datarefs: bool = False
    replace_textures: bool = True
    log_model_matching: bool = False

    @classmethod
    def load(cls, path: str | Path) -> RemoteConfig:
        path = Path(path)
        if path.exists():
            with open(path) as f:
                data = json.load(f)
            known = {k for k in cls.__dataclass_fields__}
            filtered = {k: v for k, v in data.items() if k in known}
            config = cls(**filtered)
        else:
            logger.warning("Config not found at %s, using defaults", path)
            config = cls()
        config.validate()
        return config

    def save(self, path: str | Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)

    def validate(self) -> None:
        """Raise ValueError when a setting has the wrong type or is out of range."""
        for name in ("multicast_group", "interface", "log_level"):
            if not isinstance(getattr(self, name), str):
                raise ValueError(f"{name} must be a string")
        for name in ("port", "ttl"):
            if not _is_number(getattr(self, name), integral=True):
                raise ValueError(f"{name} must be an integer")
        for name in ("beacon_interval", "liveness_timeout", "liveness_check_interval"):
            if not _is_number(getattr(self, name)):
                raise ValueError(f"{name} must be a number")
        if not 0 < self.port < 65536:
            raise ValueError(f"port out of range: {self.port}")
        if self.beacon_interval <= 0:
            raise ValueError("beacon_interval must be positive")
        if self.liveness_timeout <= 0:
            raise ValueError("liveness_timeout must be positive")
        if not 0 < self.liveness_check_interval <= self.liveness_timeout:
            raise ValueError(
                "liveness_check_interval must be positive and not exceed liveness_timeout"
            )
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"unknown log level: {self.log_level}")

    @property
    def logging_level(self) -> int:
        """Log level as a :mod:`logging` constant."""
        return getattr(logging, self.log_level.upper())

    def host_pref(self, item: str, default: int) -> int:
        """Answer a host's by-key integer preference query."""
        if item == PREF_REPLACE_DATAREFS:
            return int(self.replace_datarefs)
        if item == PREF_REPLACE_TEXTURES:
            return int(self.replace_textures)
        if item == PREF_CLAMP_ALL:
            # Coordinates arrive fully defined from the sender
            return 0
        if item == PREF_HANDLE_DUP_ID:
            # Several senders can easily use the same object ids
            return 1
        if item == PREF_SUPPORT_REMOTE:
            # This node only ever receives
            return -1
        if item == PREF_LOG_LEVEL:
            return _HOST_LOG_LEVELS[self.log_level.upper()]
        if item == PREF_MODEL_MATCHING:
            return int(self.log_model_matching)
        return default
