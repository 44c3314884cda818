"""
Memory gateway core module

Interfaces, data models and exception classes.
"""

from .models import (
    ConversationTurn,
    TraceAction,
    TraceEvent,
    TracePhase,
    TransformHook,
    TransformMode,
    TransformSpec,
)
from .exceptions import (
    ConfigurationError,
    MemoryGatewayError,
    NoStoreConnectedError,
    TransformExecutionError,
    TransformShapeError,
    TransformTimeoutError,
    UnboundMemoryError,
)
from .interfaces import (
    ChatHistory,
    MemoryBackend,
    TraceSink,
)

__all__ = [
    # Models
    "ConversationTurn",
    "TraceAction",
    "TraceEvent",
    "TracePhase",
    "TransformHook",
    "TransformMode",
    "TransformSpec",
    # Exceptions
    "ConfigurationError",
    "MemoryGatewayError",
    "NoStoreConnectedError",
    "TransformExecutionError",
    "TransformShapeError",
    "TransformTimeoutError",
    "UnboundMemoryError",
    # Interfaces
    "ChatHistory",
    "MemoryBackend",
    "TraceSink",
]
