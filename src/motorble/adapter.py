"""BLE adapter capability set and its bleak-backed implementation.

The controller only talks to the protocols defined here, so any adapter that
can stream advertisements, connect, enumerate GATT services and write with
response can drive it. ``BleakAdapter`` is the host implementation built on
bleak and bleak-retry-connector.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable, Dict, Optional, Protocol, Sequence

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.exc import BleakError
from bleak_retry_connector import (
    BleakClientWithServiceCache,
    BleakNotFoundError,
    close_stale_connections_by_address,
    establish_connection,
)

from .constants import CONNECT_TIMEOUT_DEFAULT
from .models import DiscoveredDevice

logger = logging.getLogger(__name__)

DisconnectCallback = Callable[["Connection"], None]


class Characteristic(Protocol):
    """A writable GATT characteristic."""

    @property
    def uuid(self) -> str: ...

    async def write_with_response(self, payload: bytes) -> None: ...


class Service(Protocol):
    """A GATT service and the characteristics it exposes."""

    @property
    def uuid(self) -> str: ...

    @property
    def characteristics(self) -> Sequence[Characteristic]: ...


class Connection(Protocol):
    """An established link to one peripheral."""

    @property
    def identifier(self) -> str: ...

    @property
    def is_connected(self) -> bool: ...

    async def discover_services(self) -> Sequence[Service]: ...

    async def cancel(self) -> bool:
        """Drop the link; return False when it was already down."""
        ...


class BLEAdapter(Protocol):
    """Capability set the device session controller drives."""

    async def open(self) -> None: ...

    async def close(self) -> None: ...

    def advertisements(self) -> AsyncIterator[DiscoveredDevice]:
        """Start an unfiltered scan and yield advertisements as they arrive.

        The stream ends when the scan is stopped and releases the scan when
        the consumer is cancelled.
        """
        ...

    async def stop_scan(self) -> None: ...

    async def release_stale(self, identifier: str) -> None:
        """Clear leftover connection state for ``identifier``.

        Must be a no-op when the peripheral is already disconnected.
        """
        ...

    async def connect(
        self, identifier: str, on_disconnect: Optional[DisconnectCallback] = None
    ) -> Connection: ...


class BleakCharacteristic:
    """Characteristic handle bound to the client that discovered it."""

    def __init__(self, client: BleakClientWithServiceCache, char) -> None:
        self._client = client
        self._char = char

    @property
    def uuid(self) -> str:
        return self._char.uuid

    async def write_with_response(self, payload: bytes) -> None:
        await self._client.write_gatt_char(self._char, payload, response=True)


class BleakService:
    """GATT service wrapper exposing bound characteristics."""

    def __init__(self, client: BleakClientWithServiceCache, service) -> None:
        self._service = service
        self._characteristics = [
            BleakCharacteristic(client, char) for char in service.characteristics
        ]

    @property
    def uuid(self) -> str:
        return self._service.uuid

    @property
    def characteristics(self) -> Sequence[BleakCharacteristic]:
        return self._characteristics


class BleakConnection:
    """Connection backed by a bleak client."""

    def __init__(self, identifier: str, client: BleakClientWithServiceCache) -> None:
        self._identifier = identifier
        self._client = client

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def is_connected(self) -> bool:
        return self._client.is_connected

    async def discover_services(self) -> Sequence[BleakService]:
        # bleak resolves the GATT table while connecting
        return [BleakService(self._client, service) for service in self._client.services]

    async def cancel(self) -> bool:
        if not self._client.is_connected:
            logger.debug("%s already disconnected", self._identifier)
            return False
        await self._client.disconnect()
        return True


class BleakAdapter:
    """Host BLE adapter built on bleak."""

    def __init__(self, connect_timeout: float = CONNECT_TIMEOUT_DEFAULT) -> None:
        self._connect_timeout = connect_timeout
        self._scanner: Optional[BleakScanner] = None
        self._ble_devices: Dict[str, BLEDevice] = {}
        self._connections: Dict[str, BleakConnection] = {}
        self._opened = False

    async def open(self) -> None:
        if self._opened:
            return
        self._opened = True
        logger.info("BLE adapter opened")

    async def close(self) -> None:
        if not self._opened:
            return
        await self.stop_scan()
        for identifier, connection in list(self._connections.items()):
            try:
                await connection.cancel()
            except BleakError as exc:
                logger.warning("Error closing connection to %s: %s", identifier, exc)
        self._connections.clear()
        self._ble_devices.clear()
        self._opened = False
        logger.info("BLE adapter closed")

    async def advertisements(self) -> AsyncIterator[DiscoveredDevice]:
        scanner = BleakScanner()
        await scanner.start()
        self._scanner = scanner
        logger.debug("Advertisement scan started")
        try:
            async for ble_device, adv in scanner.advertisement_data():
                self._ble_devices[ble_device.address] = ble_device
                yield DiscoveredDevice(
                    identifier=ble_device.address,
                    name=adv.local_name or ble_device.name,
                    rssi=adv.rssi,
                )
        finally:
            if self._scanner is scanner:
                await self.stop_scan()

    async def stop_scan(self) -> None:
        scanner, self._scanner = self._scanner, None
        if scanner is None:
            return
        try:
            await scanner.stop()
        except BleakError as exc:
            logger.warning("Stopping scan reported an error: %s", exc)
        else:
            logger.debug("Advertisement scan stopped")

    async def release_stale(self, identifier: str) -> None:
        connection = self._connections.pop(identifier, None)
        if connection is not None and connection.is_connected:
            logger.info("Dropping stale connection to %s", identifier)
            await connection.cancel()
        # Also drops links held by other processes; no-op when nothing is connected
        await close_stale_connections_by_address(identifier)

    async def connect(
        self, identifier: str, on_disconnect: Optional[DisconnectCallback] = None
    ) -> BleakConnection:
        ble_device = self._ble_devices.get(identifier)
        if ble_device is None:
            ble_device = await BleakScanner.find_device_by_address(
                identifier, timeout=self._connect_timeout
            )
        if ble_device is None:
            raise BleakNotFoundError(f"Device {identifier} not found")

        connection: Optional[BleakConnection] = None

        def _disconnected(_client) -> None:
            logger.info("%s disconnected", identifier)
            self._connections.pop(identifier, None)
            if on_disconnect is not None and connection is not None:
                on_disconnect(connection)

        client = await asyncio.wait_for(
            establish_connection(
                BleakClientWithServiceCache,
                ble_device,
                ble_device.name or identifier,
                disconnected_callback=_disconnected,
                max_attempts=1,
            ),
            timeout=self._connect_timeout,
        )
        connection = BleakConnection(identifier, client)
        self._connections[identifier] = connection
        return connection
