"""
Memory Gateway

A filtering proxy between a conversational agent and its memory store.
User-supplied Python transforms clean turns before they are saved and
reshape history after it is loaded; the gateway keeps the store's interface
so agents cannot tell the two apart.
"""

from .core import (
    ChatHistory,
    ConversationTurn,
    MemoryBackend,
    MemoryGatewayError,
    NoStoreConnectedError,
    TraceAction,
    TraceEvent,
    TracePhase,
    TraceSink,
    TransformExecutionError,
    TransformHook,
    TransformMode,
    TransformShapeError,
    TransformSpec,
    TransformTimeoutError,
    UnboundMemoryError,
)
from .config import GatewayConfig, TransformConfig
from .gateway import MemoryGateway
from .node import NODE_DESCRIPTION, HostTraceSink, MemoryGatewayNode, SuppliedData
from .storage import BufferMemory, InMemoryChatHistory
from .trace import LoguruTraceSink, RecordingTraceSink, TraceEmitter
from .transform import TRUNCATION_MARKER, TransformExecutor, truncate

__version__ = "0.1.0"

__all__ = [
    # Gateway
    "MemoryGateway",
    "GatewayConfig",
    "TransformConfig",
    # Transforms
    "TransformExecutor",
    "TransformHook",
    "TransformMode",
    "TransformSpec",
    "TRUNCATION_MARKER",
    "truncate",
    # Tracing
    "TraceEmitter",
    "TraceEvent",
    "TraceAction",
    "TracePhase",
    "TraceSink",
    "LoguruTraceSink",
    "RecordingTraceSink",
    # Host node
    "MemoryGatewayNode",
    "NODE_DESCRIPTION",
    "HostTraceSink",
    "SuppliedData",
    # Stores
    "BufferMemory",
    "InMemoryChatHistory",
    "ChatHistory",
    "MemoryBackend",
    "ConversationTurn",
    # Exceptions
    "MemoryGatewayError",
    "NoStoreConnectedError",
    "UnboundMemoryError",
    "TransformExecutionError",
    "TransformTimeoutError",
    "TransformShapeError",
]
