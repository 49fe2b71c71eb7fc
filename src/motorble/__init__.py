"""BLE controller for the ESP32 motor/LED peripheral."""

from .controller import DeviceSessionController
from .errors import (
    AdapterError,
    ConnectTimeoutError,
    DeviceBusyError,
    MotorBleError,
    NotConnectedError,
    NotFoundError,
    ValidationError,
)
from .models import ConnectionSession, ControllerState, DiscoveredDevice

__all__ = [
    "DeviceSessionController",
    "DiscoveredDevice",
    "ConnectionSession",
    "ControllerState",
    "MotorBleError",
    "ValidationError",
    "AdapterError",
    "ConnectTimeoutError",
    "NotFoundError",
    "DeviceBusyError",
    "NotConnectedError",
]
