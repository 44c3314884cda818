"""
Environment configuration module.

Centralizes all environment variable access with sensible defaults.
Load values from .env file or system environment variables.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default fallback."""
    return os.getenv(key, default)


def get_env_float(key: str, default: Optional[float] = None) -> Optional[float]:
    """Get environment variable as float with default fallback."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def get_env_bool(key: str, default: Optional[bool] = False) -> Optional[bool]:
    """Get environment variable as boolean with default fallback."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


@dataclass
class EnvConfig:
    """Process-level settings for the memory gateway."""

    config_path: str = field(
        default_factory=lambda: get_env("MEMORY_GATEWAY_CONFIG", "conf.yaml")
    )
    log_level: str = field(
        default_factory=lambda: get_env("MEMORY_GATEWAY_LOG_LEVEL", "INFO").upper()
    )
    transform_timeout: Optional[float] = field(
        default_factory=lambda: get_env_float("MEMORY_GATEWAY_TRANSFORM_TIMEOUT")
    )
    trace_enabled: Optional[bool] = field(
        default_factory=lambda: get_env_bool("MEMORY_GATEWAY_TRACE", None)
    )
