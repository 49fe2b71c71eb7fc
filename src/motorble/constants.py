"""Application constants including BLE target identifiers and timing definitions.

Centralized constants so the controller, adapter and HTTP layer agree on the
peripheral they talk to.
"""

from __future__ import annotations

# ============================================================================
# BLE Target Constants
# ============================================================================

TARGET_DEVICE_NAME = "ESP32_MOTOR_LED"
MOTOR_SERVICE_UUID = "4fafc201-1fb5-459e-8fcc-c5c9c331914b"
MOTOR_CHAR_UUID = "beb5483e-36e1-4688-b7f5-ea07361b26a8"

# Single-character ASCII commands understood by the firmware
PAYLOAD_ON = "1"
PAYLOAD_OFF = "0"
PAYLOAD_ENCODING = "ascii"

# ============================================================================
# Timeout Constants
# ============================================================================

# Scan timings (seconds)
SCAN_TIMEOUT_DEFAULT = 15.0  # Scans stop on their own after this window
SCAN_SETTLE_DEFAULT = 0.5  # Pause after stopping a stale scan before a fresh one

# Pulse timing (seconds)
PULSE_INTERVAL_DEFAULT = 0.1  # Gap between the "on" and "off" writes

# Connection timing (seconds)
CONNECT_TIMEOUT_DEFAULT = 20.0  # Passed to bleak for a single connect attempt
API_CONNECT_TIMEOUT = 60.0  # Upper bound the HTTP layer waits for connect()

# ============================================================================
# Environment Variable Names
# ============================================================================

SCAN_TIMEOUT_ENV = "MOTOR_BLE_SCAN_TIMEOUT"
SCAN_SETTLE_ENV = "MOTOR_BLE_SCAN_SETTLE"
PULSE_INTERVAL_ENV = "MOTOR_BLE_PULSE_INTERVAL"
CONNECT_TIMEOUT_ENV = "MOTOR_BLE_CONNECT_TIMEOUT"
LOG_LEVEL_ENV = "MOTOR_BLE_LOG_LEVEL"
VERBOSE_LOGGING_ENV = "MOTOR_BLE_VERBOSE_LOGGING"
HOST_ENV = "MOTOR_BLE_HOST"
PORT_ENV = "MOTOR_BLE_PORT"
