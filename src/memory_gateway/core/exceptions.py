"""
Memory gateway exception classes.

Transform failures are recovered inside the executor; only the store-binding
errors reach the host.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import TransformHook, TransformMode


class MemoryGatewayError(Exception):
    """Base exception for the memory gateway"""

    pass


class NoStoreConnectedError(MemoryGatewayError):
    """No memory store was supplied to the gateway"""

    def __init__(self, message: str = "No internal memory connected!"):
        super().__init__(message)


class UnboundMemoryError(MemoryGatewayError):
    """The gateway was used without a bound memory store"""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Cannot call {operation}: no memory store is bound")


class TransformExecutionError(MemoryGatewayError):
    """User transform code failed to compile or raised while running"""

    def __init__(
        self,
        hook: "TransformHook",
        mode: "TransformMode",
        reason: str,
    ):
        self.hook = hook
        self.mode = mode
        self.reason = reason
        super().__init__(f"{hook.function_name} ({mode.value}) failed: {reason}")


class TransformTimeoutError(TransformExecutionError):
    """User transform code exceeded its time budget"""

    def __init__(
        self,
        hook: "TransformHook",
        mode: "TransformMode",
        timeout_seconds: float,
    ):
        self.timeout_seconds = timeout_seconds
        super().__init__(hook, mode, f"timed out after {timeout_seconds}s")


class TransformShapeError(MemoryGatewayError):
    """User transform returned a value of the wrong shape"""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Unexpected transform result for '{field}': {message}")


class ConfigurationError(MemoryGatewayError):
    """Configuration file could not be read"""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)
