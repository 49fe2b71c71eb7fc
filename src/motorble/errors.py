"""Error types and constants for consistent error handling across the application."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Standardized error codes for consistent error handling."""

    # Device-related errors
    DEVICE_BUSY = "device_busy"
    DEVICE_DISCONNECTED = "device_disconnected"
    DEVICE_TIMEOUT = "device_timeout"

    # Validation errors
    VALIDATION_ERROR = "validation_error"

    # BLE-specific errors
    BLE_ADAPTER_ERROR = "ble_adapter_error"
    BLE_CHARACTERISTIC_MISSING = "ble_characteristic_missing"


class MotorBleError(Exception):
    """Base exception class for motorble errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        """Initialize the motorble error.

        Args:
            code: Error code identifier
            message: Human-readable error message
            details: Additional error context and data
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(MotorBleError):
    """Raised when the user selects a device other than the target."""

    def __init__(self, name: Optional[str], expected: str):
        """Initialize validation error.

        Args:
            name: Advertised name of the selected device
            expected: Name the controller accepts
        """
        super().__init__(
            ErrorCode.VALIDATION_ERROR,
            f"Please connect to {expected} device only",
            details={"name": name, "expected": expected},
        )


class AdapterError(MotorBleError):
    """Raised when the BLE stack fails a scan, connect, discovery or write."""

    def __init__(
        self,
        operation: str,
        identifier: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        """Initialize adapter error.

        Args:
            operation: Adapter operation that failed (e.g. "connect", "write")
            identifier: Device identifier involved, if any
            cause: Original exception raised by the BLE stack
        """
        message = f"BLE {operation} failed"
        if identifier:
            message += f" for device {identifier}"
        if cause:
            message += f": {cause}"
        super().__init__(
            ErrorCode.BLE_ADAPTER_ERROR,
            message,
            details={"operation": operation, "identifier": identifier},
            cause=cause,
        )
        self.operation = operation


class NotFoundError(MotorBleError):
    """Raised when the expected service or characteristic is missing."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            ErrorCode.BLE_CHARACTERISTIC_MISSING,
            message,
            details,
        )


class DeviceBusyError(MotorBleError):
    """Raised when a connect is requested while one is pending or established."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.DEVICE_BUSY, message, details)


class NotConnectedError(MotorBleError):
    """Raised when a command needs a session and none exists."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            ErrorCode.DEVICE_DISCONNECTED,
            "No device connected",
            details,
        )


class ConnectTimeoutError(MotorBleError):
    """Raised when connect and discovery do not finish in time."""

    def __init__(self, identifier: str, timeout: Optional[float]):
        """Initialize connect timeout error.

        Args:
            identifier: Device identifier being connected
            timeout: Timeout duration in seconds
        """
        super().__init__(
            ErrorCode.DEVICE_TIMEOUT,
            f"Connection to {identifier} timed out after {timeout} seconds",
            details={"identifier": identifier, "timeout": timeout},
        )
