"""Test configuration ensuring the src package is importable, plus a fake BLE adapter."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import AsyncIterator, List, Optional

import pytest

SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from motorble.constants import MOTOR_CHAR_UUID, MOTOR_SERVICE_UUID, TARGET_DEVICE_NAME  # noqa: E402
from motorble.controller import DeviceSessionController  # noqa: E402
from motorble.models import DiscoveredDevice  # noqa: E402

TARGET = DiscoveredDevice(identifier="A1", name=TARGET_DEVICE_NAME, rssi=-60)
OTHER = DiscoveredDevice(identifier="B2", name="Living Room TV", rssi=-80)


# ========== Fake adapter ==========
# Records every call so tests can assert on ordering and on "no I/O" paths.


class FakeCharacteristic:
    def __init__(self, uuid: str, adapter: "FakeAdapter") -> None:
        self.uuid = uuid
        self._adapter = adapter
        self.writes: List[tuple[bytes, float]] = []
        self.fail_on: Optional[bytes] = None
        self.write_delay = 0.0

    async def write_with_response(self, payload: bytes) -> None:
        self._adapter.calls.append(("write", payload))
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        if self.fail_on == payload:
            raise OSError(f"write of {payload!r} not acknowledged")
        # Completion time of the acknowledged write
        self.writes.append((payload, asyncio.get_running_loop().time()))


class FakeService:
    def __init__(self, uuid: str, characteristics: List[FakeCharacteristic]) -> None:
        self.uuid = uuid
        self.characteristics = characteristics


class FakeConnection:
    def __init__(self, identifier: str, services: List[FakeService], adapter: "FakeAdapter") -> None:
        self.identifier = identifier
        self.services = services
        self.is_connected = True
        self._adapter = adapter
        self.discover_error: Optional[Exception] = None
        self.cancel_error: Optional[Exception] = None

    async def discover_services(self) -> List[FakeService]:
        self._adapter.calls.append(("discover", self.identifier))
        if self.discover_error is not None:
            raise self.discover_error
        return self.services

    async def cancel(self) -> bool:
        self._adapter.calls.append(("cancel", self.identifier))
        if self.cancel_error is not None:
            raise self.cancel_error
        was_connected = self.is_connected
        self.is_connected = False
        return was_connected


class FakeAdapter:
    """In-memory adapter driven by the test through ``advertise``/``end_scan``."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.opened = False
        self.closed = False
        self.scan_error: Optional[Exception] = None
        self.connect_error: Optional[Exception] = None
        self.release_error: Optional[Exception] = None
        self.connect_delay = 0.0
        self.characteristic = FakeCharacteristic(MOTOR_CHAR_UUID, self)
        self.services = [
            FakeService("0000180a-0000-1000-8000-00805f9b34fb", []),
            FakeService(MOTOR_SERVICE_UUID, [self.characteristic]),
        ]
        self.connection: Optional[FakeConnection] = None
        self.on_disconnect = None
        self.scan_active = False
        self._queue: asyncio.Queue | None = None

    # -- lifecycle
    async def open(self) -> None:
        self.calls.append(("open",))
        self.opened = True

    async def close(self) -> None:
        self.calls.append(("close",))
        self.closed = True

    # -- scanning
    async def advertisements(self) -> AsyncIterator[DiscoveredDevice]:
        self.calls.append(("scan",))
        if self.scan_error is not None:
            raise self.scan_error
        queue = self._ensure_queue()
        self.scan_active = True
        try:
            while True:
                device = await queue.get()
                if device is None:
                    return
                yield device
        finally:
            self.scan_active = False

    async def stop_scan(self) -> None:
        self.calls.append(("stop_scan",))

    def _ensure_queue(self) -> asyncio.Queue:
        if self._queue is None:
            self._queue = asyncio.Queue()
        return self._queue

    def advertise(self, *devices: DiscoveredDevice) -> None:
        for device in devices:
            self._ensure_queue().put_nowait(device)

    def end_scan(self) -> None:
        self._ensure_queue().put_nowait(None)

    # -- connections
    async def release_stale(self, identifier: str) -> None:
        self.calls.append(("release_stale", identifier))
        if self.release_error is not None:
            raise self.release_error

    async def connect(self, identifier: str, on_disconnect=None) -> FakeConnection:
        self.calls.append(("connect", identifier))
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.connect_error is not None:
            raise self.connect_error
        self.connection = FakeConnection(identifier, self.services, self)
        self.on_disconnect = on_disconnect
        return self.connection

    def io_calls(self) -> List[tuple]:
        """Calls that touch the radio (everything but open/close)."""
        return [call for call in self.calls if call[0] not in ("open", "close")]


@pytest.fixture()
def adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture()
def controller(adapter: FakeAdapter) -> DeviceSessionController:
    """Controller with short timings so tests stay fast."""
    return DeviceSessionController(
        adapter,
        scan_timeout=0.2,
        scan_settle=0.0,
        pulse_interval=0.05,
    )
