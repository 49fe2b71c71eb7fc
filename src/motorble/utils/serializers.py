"""Serialization helpers for API responses.

These convert internal dataclasses into JSON-safe primitives.
"""

from __future__ import annotations

from typing import Any, Dict

from ..models import ControllerState, DiscoveredDevice


def discovered_device_to_dict(device: DiscoveredDevice) -> Dict[str, Any]:
    """Convert a discovered device into JSON-safe primitives.

    ``is_target`` lets the UI highlight the motor controller in a listing
    that also shows unrelated BLE traffic.
    """
    return {
        "id": device.identifier,
        "name": device.name,
        "display_name": device.display_name,
        "rssi": device.rssi,
        "is_target": device.is_target,
    }


def controller_state_to_dict(state: ControllerState) -> Dict[str, Any]:
    """Convert a controller snapshot into JSON-safe primitives."""
    connected = state.connected_device
    return {
        "scanning": state.scanning,
        "connecting": state.connecting,
        "pulsing": state.pulsing,
        "connected": state.connected,
        "connected_device": discovered_device_to_dict(connected) if connected else None,
        "devices": [discovered_device_to_dict(device) for device in state.devices],
        "last_error": state.last_error,
    }
