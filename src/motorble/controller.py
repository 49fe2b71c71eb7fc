"""Device session controller for the ESP32 motor/LED peripheral.

Coordinates discovery, connection, command pulses and teardown against a
single target peripheral. The controller owns its adapter and all state
flags; the presentation layer reads ``state()`` and calls the operations.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from typing import Dict, Optional, Sequence

from .adapter import BLEAdapter, BleakAdapter, Characteristic, Connection, Service
from .constants import (
    CONNECT_TIMEOUT_DEFAULT,
    CONNECT_TIMEOUT_ENV,
    MOTOR_CHAR_UUID,
    MOTOR_SERVICE_UUID,
    PAYLOAD_ENCODING,
    PAYLOAD_OFF,
    PAYLOAD_ON,
    PULSE_INTERVAL_DEFAULT,
    PULSE_INTERVAL_ENV,
    SCAN_SETTLE_DEFAULT,
    SCAN_SETTLE_ENV,
    SCAN_TIMEOUT_DEFAULT,
    SCAN_TIMEOUT_ENV,
    TARGET_DEVICE_NAME,
)
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
from .utils import get_env_float

logger = logging.getLogger(__name__)


def uuid_matches(candidate: str, expected: str) -> bool:
    """Return True if ``candidate`` carries ``expected``, ignoring case."""
    return expected.lower() in candidate.lower()


def find_characteristic(
    services: Sequence[Service],
    service_uuid: str = MOTOR_SERVICE_UUID,
    char_uuid: str = MOTOR_CHAR_UUID,
) -> Optional[Characteristic]:
    """Return the first characteristic matching both identifiers."""
    for service in services:
        if not uuid_matches(service.uuid, service_uuid):
            continue
        for characteristic in service.characteristics:
            if uuid_matches(characteristic.uuid, char_uuid):
                return characteristic
    return None


class DeviceSessionController:
    """Drives scan, connect, pulse and disconnect against one peripheral."""

    def __init__(
        self,
        adapter: Optional[BLEAdapter] = None,
        *,
        scan_timeout: Optional[float] = None,
        scan_settle: Optional[float] = None,
        pulse_interval: Optional[float] = None,
    ) -> None:
        """Initialize the controller.

        Timings default to the MOTOR_BLE_* environment overrides, falling
        back to the constants in ``motorble.constants``.
        """
        if adapter is None:
            adapter = BleakAdapter(
                connect_timeout=get_env_float(CONNECT_TIMEOUT_ENV, CONNECT_TIMEOUT_DEFAULT)
            )
        self._adapter = adapter
        self._scan_timeout = (
            scan_timeout
            if scan_timeout is not None
            else get_env_float(SCAN_TIMEOUT_ENV, SCAN_TIMEOUT_DEFAULT)
        )
        self._scan_settle = (
            scan_settle
            if scan_settle is not None
            else get_env_float(SCAN_SETTLE_ENV, SCAN_SETTLE_DEFAULT)
        )
        self._pulse_interval = (
            pulse_interval
            if pulse_interval is not None
            else get_env_float(PULSE_INTERVAL_ENV, PULSE_INTERVAL_DEFAULT)
        )

        self._devices: Dict[str, DiscoveredDevice] = {}  # identifier -> device, discovery order
        self._session: Optional[ConnectionSession] = None
        self._scan_task: Optional[asyncio.Task] = None
        self._scanning = False
        self._connecting = False
        self._pulsing = False
        self._last_error: Optional[MotorBleError] = None
        self._opened = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """Acquire the adapter. Safe to call more than once."""
        if self._opened:
            return
        await self._adapter.open()
        self._opened = True
        logger.info(
            "Controller ready (scan %.1fs, pulse %.3fs)",
            self._scan_timeout,
            self._pulse_interval,
        )

    async def close(self) -> None:
        """Stop scanning, drop the session and release the adapter."""
        if not self._opened:
            return
        await self.stop_scan()
        await self.disconnect()
        await self._adapter.close()
        self._opened = False
        logger.info("Controller closed")

    async def __aenter__(self) -> "DeviceSessionController":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def scanning(self) -> bool:
        return self._scanning

    @property
    def connecting(self) -> bool:
        return self._connecting

    @property
    def pulsing(self) -> bool:
        return self._pulsing

    @property
    def session(self) -> Optional[ConnectionSession]:
        return self._session

    @property
    def devices(self) -> list[DiscoveredDevice]:
        return list(self._devices.values())

    @property
    def last_error(self) -> Optional[MotorBleError]:
        return self._last_error

    def find_device(self, identifier: str) -> Optional[DiscoveredDevice]:
        return self._devices.get(identifier)

    def state(self) -> ControllerState:
        """Return an immutable snapshot for the presentation layer."""
        session = self._session
        return ControllerState(
            scanning=self._scanning,
            connecting=self._connecting,
            pulsing=self._pulsing,
            devices=tuple(self._devices.values()),
            connected_device=session.device if session else None,
            last_error=self._last_error.to_dict() if self._last_error else None,
        )

    def _record_error(self, error: MotorBleError) -> MotorBleError:
        self._last_error = error
        return error

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    async def start_scan(self) -> bool:
        """Begin a bounded scan; return False if one is already running."""
        if self._scanning:
            logger.debug("Scan already active; ignoring start request")
            return False
        self._devices.clear()
        self._last_error = None
        self._scanning = True
        self._scan_task = asyncio.create_task(self._scan_worker(), name="motorble-scan")
        logger.info("Scan started (%.1fs window)", self._scan_timeout)
        return True

    async def stop_scan(self) -> None:
        """Stop any running scan. Idempotent."""
        task, self._scan_task = self._scan_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._adapter.stop_scan()
        self._scanning = False

    async def wait_for_scan(self) -> None:
        """Wait until the current scan, if any, has ended."""
        task = self._scan_task
        if task is None:
            return
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def _scan_worker(self) -> None:
        """Consume advertisements until the window closes or the scan stops."""
        try:
            await asyncio.wait_for(self._collect_advertisements(), timeout=self._scan_timeout)
        except asyncio.TimeoutError:
            logger.info("Scan window elapsed with %d device(s) found", len(self._devices))
        except asyncio.CancelledError:
            logger.info("Scan cancelled")
            raise
        except Exception as exc:
            error = self._record_error(AdapterError("scan", cause=exc))
            logger.warning("%s", error.message)
        else:
            logger.info("Scan ended with %d device(s) found", len(self._devices))
        finally:
            self._scanning = False

    async def _collect_advertisements(self) -> None:
        # Clear whatever scan the adapter may still hold before a fresh one
        await self._adapter.stop_scan()
        if self._scan_settle > 0:
            await asyncio.sleep(self._scan_settle)
        async with aclosing(self._adapter.advertisements()) as stream:
            async for device in stream:
                self._record_advertisement(device)

    def _record_advertisement(self, device: DiscoveredDevice) -> None:
        if not self._scanning:
            return
        if not device.name:
            return
        if device.identifier in self._devices:
            return
        self._devices[device.identifier] = device
        logger.debug("Discovered %s (%s)", device.name, device.identifier)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def connect(
        self, device: DiscoveredDevice, timeout: Optional[float] = None
    ) -> ConnectionSession:
        """Connect to ``device`` and resolve the motor characteristic.

        ``timeout`` bounds the connect and discovery steps; None waits indefinitely.

        Raises:
            ValidationError: ``device`` is not the motor controller; no I/O done.
            DeviceBusyError: a connect is pending or a session already exists.
            AdapterError: connect or service discovery failed.
            NotFoundError: the motor service/characteristic is absent.
            ConnectTimeoutError: ``timeout`` elapsed before the session was ready.
        """
        if device.name != TARGET_DEVICE_NAME:
            error = ValidationError(device.name, TARGET_DEVICE_NAME)
            logger.warning("Rejected connect to %s (%s)", device.display_name, device.identifier)
            raise self._record_error(error)
        if self._connecting:
            raise DeviceBusyError("A connection attempt is already in progress")
        if self._session is not None:
            raise DeviceBusyError(
                f"Already connected to {self._session.device.identifier}",
                details={"identifier": self._session.device.identifier},
            )

        self._connecting = True
        self._last_error = None
        try:
            await self.stop_scan()
            try:
                session = await asyncio.wait_for(self._establish_session(device), timeout=timeout)
            except asyncio.TimeoutError:
                raise ConnectTimeoutError(device.identifier, timeout) from None
        except MotorBleError as error:
            logger.warning("Connect to %s failed: %s", device.identifier, error.message)
            raise self._record_error(error)
        finally:
            self._connecting = False

        self._session = session
        self._devices.clear()
        logger.info("Connected to %s and characteristic found", device.identifier)
        return session

    async def _establish_session(self, device: DiscoveredDevice) -> ConnectionSession:
        identifier = device.identifier
        await self._release_stale(identifier)
        try:
            connection = await self._adapter.connect(
                identifier, on_disconnect=self._handle_connection_lost
            )
        except Exception as exc:
            raise AdapterError("connect", identifier, cause=exc) from exc

        try:
            try:
                services = await connection.discover_services()
            except Exception as exc:
                raise AdapterError("service discovery", identifier, cause=exc) from exc
            characteristic = find_characteristic(services)
            if characteristic is None:
                raise NotFoundError(
                    "Characteristic not found",
                    details={
                        "identifier": identifier,
                        "service_uuid": MOTOR_SERVICE_UUID,
                        "characteristic_uuid": MOTOR_CHAR_UUID,
                    },
                )
        except MotorBleError:
            await self._cancel_connection(connection)
            raise

        return ConnectionSession(device=device, connection=connection, characteristic=characteristic)

    async def _release_stale(self, identifier: str) -> None:
        """Best-effort cleanup of leftover link state before connecting.

        Errors here mean the peripheral was already disconnected; they are
        logged and the connect carries on.
        """
        try:
            await self._adapter.release_stale(identifier)
        except Exception as exc:
            logger.warning(
                "Stale connection cleanup for %s failed, treating as disconnected: %s",
                identifier,
                exc,
            )

    def _handle_connection_lost(self, connection: Connection) -> None:
        session = self._session
        if session is None or session.connection is not connection:
            return
        logger.warning("Lost connection to %s", session.device.identifier)
        self._session = None

    async def _cancel_connection(self, connection: Connection) -> None:
        """Drop ``connection``; failures count as already disconnected."""
        try:
            await connection.cancel()
        except Exception as exc:
            logger.warning(
                "Disconnect of %s reported an error, treating as disconnected: %s",
                connection.identifier,
                exc,
            )

    async def disconnect(self) -> bool:
        """Drop the current session; return False if there was none."""
        session = self._session
        if session is None:
            return False
        self._session = None
        await self._cancel_connection(session.connection)
        logger.info("Disconnected from %s", session.device.identifier)
        return True

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def send_pulse(self) -> bool:
        """Write "on", wait the pulse interval, then write "off".

        Returns False without writing when a pulse is already in flight.

        Raises:
            NotConnectedError: there is no session.
            AdapterError: either write failed. The pulse flag is still cleared.
        """
        session = self._session
        if session is None:
            raise NotConnectedError()
        if self._pulsing:
            logger.debug("Pulse already in flight; ignoring request")
            return False

        self._pulsing = True
        try:
            await self._write(session, PAYLOAD_ON)
            logger.debug("Pulse ON")
            await asyncio.sleep(self._pulse_interval)
            await self._write(session, PAYLOAD_OFF)
            logger.debug("Pulse OFF")
        except AdapterError as error:
            logger.warning("Pulse failed: %s", error.message)
            raise self._record_error(error)
        finally:
            self._pulsing = False
        return True

    async def _write(self, session: ConnectionSession, payload: str) -> None:
        try:
            await session.characteristic.write_with_response(payload.encode(PAYLOAD_ENCODING))
        except Exception as exc:
            raise AdapterError("write", session.device.identifier, cause=exc) from exc
