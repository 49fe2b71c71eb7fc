"""Utility package for general-purpose helpers.

Provides environment configuration and serializers for API responses.
"""

from .env import get_env_bool, get_env_float, get_env_int
from .serializers import controller_state_to_dict, discovered_device_to_dict

__all__ = [
    # Environment utilities
    "get_env_bool",
    "get_env_float",
    "get_env_int",
    # Serializers
    "controller_state_to_dict",
    "discovered_device_to_dict",
]
