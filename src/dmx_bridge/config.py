"""
Bridge configuration loaded from a YAML file.

Example::

    port: /dev/ttyUSB0
    read_timeout: 0.5
    protection_window_ms: 100
    channels: [1, 2, 3]

Usage::

    from dmx_bridge.config import load_config

    config = load_config("config/bridge.yaml")
    governor = config.create_governor(player.play)
    with config.create_session() as session:
        session.on_winner_changed(lambda e: governor.request(e.channel))
        session.start(config.channels)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import yaml

from .constants import DEFAULT_READ_TIMEOUT, PROTECTION_WINDOW_MS
from .exceptions import ValidationError
from .governor import FloodGovernor
from .session import LinkSession
from .transport import available_ports

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BridgeConfig:
    """Validated bridge configuration."""

    port: str
    channels: tuple[int, ...]
    read_timeout: float | None = DEFAULT_READ_TIMEOUT
    protection_window_ms: int = PROTECTION_WINDOW_MS

    def create_session(self) -> LinkSession:
        return LinkSession(self.port, read_timeout=self.read_timeout)

    def create_governor(self, switch: Callable[[int], None]) -> FloodGovernor:
        return FloodGovernor(
            switch,
            channels=frozenset(self.channels),
            window=self.protection_window_ms / 1000,
        )


# ---------------------------------------------------------------------------
# Config loading & validation
# ---------------------------------------------------------------------------


def load_config(path: str | Path) -> BridgeConfig:
    """Load and validate a bridge configuration from a YAML file.

    Args:
        path: Path to the YAML config file.

    Returns:
        A validated :class:`BridgeConfig`.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValidationError: If the config is malformed or contains invalid values.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValidationError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    port = raw.get("port")
    if not isinstance(port, str) or not port.strip():
        ports = available_ports()
        logger.info("Available serial ports: %s", ", ".join(ports) or "none")
        raise ValidationError(
            "Config must specify a non-empty 'port' string "
            f"(available: {', '.join(ports) or 'none'})"
        )

    return BridgeConfig(
        port=port.strip(),
        channels=_parse_channels(raw.get("channels")),
        read_timeout=_parse_read_timeout(raw.get("read_timeout", DEFAULT_READ_TIMEOUT)),
        protection_window_ms=_parse_window(raw.get("protection_window_ms", PROTECTION_WINDOW_MS)),
    )


def _parse_channels(raw_channels: object) -> tuple[int, ...]:
    if not isinstance(raw_channels, list) or not raw_channels:
        raise ValidationError("Config must contain a non-empty 'channels' list")

    channels: list[int] = []
    for ch in raw_channels:
        if isinstance(ch, bool) or not isinstance(ch, int) or ch <= 0:
            raise ValidationError(f"Channel must be a positive integer, got {ch!r}")
        if ch in channels:
            raise ValidationError(f"Channel {ch} is listed more than once")
        channels.append(ch)
    return tuple(channels)


def _parse_read_timeout(val: object) -> float | None:
    if val is None:
        return None
    if isinstance(val, bool) or not isinstance(val, (int, float)) or val <= 0:
        raise ValidationError(f"'read_timeout' must be a positive number or null, got {val!r}")
    return float(val)


def _parse_window(val: object) -> int:
    if isinstance(val, bool) or not isinstance(val, int) or val < 0:
        raise ValidationError(
            f"'protection_window_ms' must be a non-negative integer, got {val!r}"
        )
    return val
