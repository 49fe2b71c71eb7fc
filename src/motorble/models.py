"""State models shared by the controller, the adapter and the HTTP layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

from .constants import TARGET_DEVICE_NAME

if TYPE_CHECKING:  # pragma: no cover
    from .adapter import Characteristic, Connection


@dataclass(frozen=True, slots=True)
class DiscoveredDevice:
    """A named peripheral reported by the adapter during a scan."""

    identifier: str
    name: Optional[str] = None
    rssi: Optional[int] = None

    @property
    def is_target(self) -> bool:
        """Return True when the advertised name is the motor controller's."""
        return self.name == TARGET_DEVICE_NAME

    @property
    def display_name(self) -> str:
        return self.name or "Unknown Device"


@dataclass(slots=True)
class ConnectionSession:
    """The single live connection and its resolved command characteristic."""

    device: DiscoveredDevice
    connection: "Connection"
    characteristic: "Characteristic"


@dataclass(frozen=True, slots=True)
class ControllerState:
    """Snapshot of what the presentation layer renders.

    ``devices`` keeps discovery order; ``last_error`` carries the
    ``MotorBleError.to_dict()`` of the most recent failure, if any.
    """

    scanning: bool
    connecting: bool
    pulsing: bool
    devices: Tuple[DiscoveredDevice, ...]
    connected_device: Optional[DiscoveredDevice] = None
    last_error: Optional[dict] = None

    @property
    def connected(self) -> bool:
        return self.connected_device is not None
