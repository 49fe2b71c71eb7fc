"""FastAPI service module for the ESP32 motor/LED controller.

This module keeps only the web-facing wiring. The BLE workflow lives in
``controller.py``; one controller is opened per application lifetime by the
lifespan handler and shared with the routers through ``app.state``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api.routes_devices import router as devices_router
from .constants import HOST_ENV, PORT_ENV
from .controller import DeviceSessionController
from .utils import get_env_int

logger = logging.getLogger(__name__)

# Controller instance - created lazily on first access
_controller_instance: DeviceSessionController | None = None


def get_controller() -> DeviceSessionController:
    """Get or create the singleton controller instance.

    Lazy creation keeps uvicorn's import of this module free of BLE side effects.
    """
    global _controller_instance
    if _controller_instance is None:
        _controller_instance = DeviceSessionController()
    return _controller_instance


def set_controller(controller: DeviceSessionController | None) -> None:
    """Replace the controller used by the app (tests inject a fake adapter here)."""
    global _controller_instance
    _controller_instance = controller


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the controller on startup and release the adapter on shutdown."""
    controller = get_controller()
    app.state.controller = controller
    await controller.open()
    try:
        yield
    finally:
        await controller.close()


app = FastAPI(title="Motor BLE Controller", lifespan=lifespan)


@app.get("/api/health")
async def health_check():
    """Health check endpoint for container monitoring."""
    state = get_controller().state()
    return {
        "status": "healthy",
        "service": "motorble",
        "connected": state.connected,
        "scanning": state.scanning,
    }


app.include_router(devices_router)


def main() -> None:  # pragma: no cover
    """Run the FastAPI service under Uvicorn.

    Configuration is handled via MOTOR_BLE_* environment variables.
    """
    import os
    import sys

    import uvicorn

    from .logging_config import configure_logging, get_uvicorn_log_config

    configure_logging()

    host = os.getenv(HOST_ENV, "0.0.0.0")
    port = get_env_int(PORT_ENV, 8000)
    logger.info("Starting motorble on %s:%d", host, port)

    try:
        uvicorn.run(
            app,
            host=host,
            port=port,
            log_config=get_uvicorn_log_config(),
        )
    except Exception as e:
        logger.exception("FATAL ERROR: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
