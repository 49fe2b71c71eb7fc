"""Controller API routes (state, scan, connect, pulse, disconnect)."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Request, status
from pydantic import BaseModel, Field

from ..constants import API_CONNECT_TIMEOUT
from ..controller import DeviceSessionController
from ..utils import controller_state_to_dict, discovered_device_to_dict
from .exceptions import device_not_found, handle_controller_errors

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["devices"])


# ============================================================================
# Response Models
# ============================================================================


class DeviceResponse(BaseModel):
    """A device seen during the current scan"""

    id: str = Field(..., description="Adapter-assigned device identifier")
    name: Optional[str] = Field(None, description="Advertised name")
    display_name: str = Field(..., description="Name to render")
    rssi: Optional[int] = Field(None, description="Signal strength when discovered")
    is_target: bool = Field(..., description="Whether this is the motor controller")


class StateResponse(BaseModel):
    """Everything the UI needs to render the controller"""

    scanning: bool
    connecting: bool
    pulsing: bool
    connected: bool
    connected_device: Optional[DeviceResponse] = None
    devices: List[DeviceResponse] = Field(default_factory=list)
    last_error: Optional[Dict[str, Any]] = None


class PulseResponse(BaseModel):
    """Outcome of a pulse request"""

    sent: bool = Field(..., description="False when a pulse was already in flight")


def _controller(request: Request) -> DeviceSessionController:
    return request.app.state.controller


def _state(controller: DeviceSessionController) -> Dict[str, Any]:
    return controller_state_to_dict(controller.state())


# ============================================================================
# State Endpoints
# ============================================================================


@router.get("/state", response_model=StateResponse)
async def get_state(request: Request) -> Dict[str, Any]:
    """Return the controller snapshot."""
    return _state(_controller(request))


@router.get("/devices", response_model=List[DeviceResponse])
async def list_devices(request: Request) -> List[Dict[str, Any]]:
    """Return devices discovered by the current or last scan."""
    return [discovered_device_to_dict(device) for device in _controller(request).devices]


# ============================================================================
# Scan Endpoints
# ============================================================================


@router.post("/scan", response_model=StateResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_scan(request: Request) -> Dict[str, Any]:
    """Start a bounded scan; a request during an active scan is ignored."""
    controller = _controller(request)
    await controller.start_scan()
    return _state(controller)


@router.post("/scan/stop", response_model=StateResponse)
async def stop_scan(request: Request) -> Dict[str, Any]:
    """Stop the current scan, if any."""
    controller = _controller(request)
    await controller.stop_scan()
    return _state(controller)


# ============================================================================
# Session Endpoints
# ============================================================================


@router.post("/devices/{identifier}/connect", response_model=StateResponse)
@handle_controller_errors
async def connect_device(request: Request, identifier: str) -> Dict[str, Any]:
    """Connect to a discovered device and resolve its motor characteristic."""
    controller = _controller(request)
    device = controller.find_device(identifier)
    if device is None:
        raise device_not_found(identifier)

    logger.info("Connect request for %s (%s)", device.display_name, identifier)
    await controller.connect(device, timeout=API_CONNECT_TIMEOUT)
    return _state(controller)


@router.post("/pulse", response_model=PulseResponse)
@handle_controller_errors
async def send_pulse(request: Request) -> Dict[str, bool]:
    """Send one on/off pulse to the connected device."""
    sent = await _controller(request).send_pulse()
    return {"sent": sent}


@router.post("/disconnect", response_model=StateResponse)
async def disconnect_device(request: Request) -> Dict[str, Any]:
    """Disconnect the current session; a no-op when there is none."""
    controller = _controller(request)
    await controller.disconnect()
    return _state(controller)
