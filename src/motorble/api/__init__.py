"""HTTP API for the motor controller."""
