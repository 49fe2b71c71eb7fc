"""Exception handling utilities for API routes.

Provides factory functions and a decorator that turn controller errors into
consistent HTTP responses.
"""

import functools
import logging
from typing import Any, Callable, TypeVar, cast

from fastapi import HTTPException

from ..errors import (
    AdapterError,
    ConnectTimeoutError,
    DeviceBusyError,
    MotorBleError,
    NotConnectedError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# TypeVar for wrapping async functions
F = TypeVar("F", bound=Callable[..., Any])


# ============================================================================
# HTTP Error Factory Functions
# ============================================================================


def device_not_found(identifier: str) -> HTTPException:
    """Create a standardized 404 error for a device missing from the scan list.

    Args:
        identifier: Device identifier that was not found

    Returns:
        HTTPException with 404 status and formatted message
    """
    return HTTPException(status_code=404, detail=f"Device not found: {identifier}")


def wrong_target_device(error: ValidationError) -> HTTPException:
    """Create a 422 error for a connect to a device other than the target."""
    return HTTPException(status_code=422, detail=error.to_dict())


def characteristic_not_found(error: NotFoundError) -> HTTPException:
    """Create a 404 error for a peripheral lacking the motor characteristic."""
    return HTTPException(status_code=404, detail=error.to_dict())


def device_busy(error: MotorBleError) -> HTTPException:
    """Create a 409 error for busy or disconnected controller states."""
    return HTTPException(status_code=409, detail=error.to_dict())


def bluetooth_operation_failed(error: AdapterError) -> HTTPException:
    """Create a 503 error for a failure reported by the BLE stack."""
    return HTTPException(status_code=503, detail=error.to_dict())


def connection_timeout() -> HTTPException:
    """Create a standardized 504 error for connection timeout.

    Returns:
        HTTPException with 504 status for timeout
    """
    return HTTPException(status_code=504, detail="Connection timeout")


def to_http_exception(error: MotorBleError) -> HTTPException:
    """Map a controller error onto its HTTP response."""
    if isinstance(error, ConnectTimeoutError):
        return connection_timeout()
    if isinstance(error, ValidationError):
        return wrong_target_device(error)
    if isinstance(error, NotFoundError):
        return characteristic_not_found(error)
    if isinstance(error, (DeviceBusyError, NotConnectedError)):
        return device_busy(error)
    if isinstance(error, AdapterError):
        return bluetooth_operation_failed(error)
    return HTTPException(status_code=500, detail=error.to_dict())


# ============================================================================
# Error Handling Decorators
# ============================================================================


def handle_controller_errors(func: F) -> F:
    """Decorator for consistent error handling across controller endpoints.

    - HTTPException: Pass through (already formatted for response)
    - MotorBleError: Mapped through ``to_http_exception``

    Usage:
        @router.post("/pulse")
        @handle_controller_errors
        async def pulse(request: Request):
            ...
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except HTTPException:
            raise
        except MotorBleError as e:
            logger.info("%s failed: %s", func.__name__, e.message)
            raise to_http_exception(e) from e

    return cast(F, wrapper)
