"""Memory Gateway - filtering proxy in front of a conversation memory store.

The gateway exposes the same capability set as the store it wraps
(``load_memory_variables``, ``save_context``, ``clear``, ``memory_keys``) and
can be handed to an agent anywhere the store is expected. Writes pass through
the before-save transform on the way in; reads pass through the after-retrieve
transform on the way out. Store errors are never caught here.
"""

from __future__ import annotations

from typing import Any, Sequence

from loguru import logger

from .config import GatewayConfig
from .core.exceptions import NoStoreConnectedError, UnboundMemoryError
from .core.interfaces import MemoryBackend, TraceSink
from .core.models import ConversationTurn, TraceAction, TransformHook, TransformSpec
from .trace import TraceEmitter
from .transform.executor import TransformExecutor

DEFAULT_MEMORY_KEY = "chat_history"
HISTORY_FIELDS = ("chat_history", "history")


def _first_text(values: dict[str, Any] | None, keys: Sequence[str]) -> str:
    """Return the first truthy value among ``keys`` as text, else ``""``."""
    if not values:
        return ""
    for key in keys:
        value = values.get(key)
        if value:
            return value if isinstance(value, str) else str(value)
    return ""


def _history_field(data: Any) -> str | None:
    """Name of the history field the store populated, if any."""
    if not isinstance(data, dict):
        return None
    for name in HISTORY_FIELDS:
        if name in data:
            return name
    return None


class MemoryGateway:
    """Filtering proxy bound to exactly one memory store.

    Composition only: the gateway holds a reference to the store and never
    owns its lifecycle.

    Attributes:
        config: Transform sources and limits
    """

    def __init__(
        self,
        memory: MemoryBackend | None,
        config: GatewayConfig | None = None,
        trace_sink: TraceSink | None = None,
        executor: TransformExecutor | None = None,
    ):
        """Bind the gateway to ``memory``.

        Args:
            memory: The store to wrap
            config: Gateway configuration (defaults when not provided)
            trace_sink: Destination for trace events (loguru when not provided)
            executor: Transform executor (built from ``config`` when not provided)

        Raises:
            NoStoreConnectedError: If ``memory`` is None
        """
        if memory is None:
            raise NoStoreConnectedError()

        self._memory = memory
        self.config = config or GatewayConfig()
        self._executor = executor or TransformExecutor(
            timeout_seconds=self.config.transform.timeout_seconds,
            allowed_modules=self.config.transform.allowed_modules,
        )
        self._tracer = TraceEmitter(trace_sink, enabled=self.config.trace_enabled)
        self._before_save = TransformSpec(
            TransformHook.BEFORE_SAVE, self.config.filter_before_save
        )
        self._after_retrieve = TransformSpec(
            TransformHook.AFTER_RETRIEVE, self.config.filter_after_retrieve
        )

        logger.info(
            f"MemoryGateway bound to {type(memory).__name__}: "
            f"before_save={self._describe(self._before_save)}, "
            f"after_retrieve={self._describe(self._after_retrieve)}"
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def memory(self) -> MemoryBackend:
        """The wrapped store."""
        return self._require_memory("memory")

    @property
    def memory_keys(self) -> list[str]:
        keys = getattr(self._require_memory("memory_keys"), "memory_keys", None)
        if keys is None:
            return [DEFAULT_MEMORY_KEY]
        return list(keys)

    @property
    def chat_history(self) -> Any:
        """The store's history sub-resource, or None if it has none."""
        return getattr(self._require_memory("chat_history"), "chat_history", None)

    @property
    def before_save(self) -> TransformSpec:
        return self._before_save

    @property
    def after_retrieve(self) -> TransformSpec:
        return self._after_retrieve

    # ------------------------------------------------------------------
    # Memory contract
    # ------------------------------------------------------------------

    def load_memory_variables(self, values: dict[str, Any]) -> dict[str, Any]:
        """Load from the store and filter the history on the way out.

        Only the history field the store populated (``chat_history`` or
        ``history``) is rewritten; every other key is returned untouched.
        """
        memory = self._require_memory("load_memory_variables")
        action = TraceAction.LOAD_MEMORY_VARIABLES
        token = self._tracer.begin(action, {"values": values})

        data = memory.load_memory_variables(values)

        field = _history_field(data)
        history = data[field] if field else []
        if not self._after_retrieve.is_empty:
            filtered = self._executor.filter_messages(self._after_retrieve, history)
            if field:
                data[field] = filtered
            history = filtered

        self._tracer.end(token, action, {"chat_history": history or []})
        return data

    def save_context(self, inputs: dict[str, Any], outputs: dict[str, Any]) -> Any:
        """Filter one turn and save it to the store.

        Returns:
            Whatever the store's ``save_context`` returned
        """
        memory = self._require_memory("save_context")
        action = TraceAction.SAVE_CONTEXT
        turn = ConversationTurn(
            input=_first_text(inputs, ("input", "question")),
            output=_first_text(outputs, ("output", "response")),
        )
        token = self._tracer.begin(action, turn.as_dict())

        turn = self._executor.filter_turn(self._before_save, turn)
        result = memory.save_context({"input": turn.input}, {"output": turn.output})

        self._tracer.end(token, action, {"chat_history": self._read_history(memory)})
        return result

    def clear(self) -> Any:
        """Clear the store when it supports clearing; otherwise do nothing."""
        clear = getattr(self._require_memory("clear"), "clear", None)
        if callable(clear):
            return clear()
        return None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_memory(self, operation: str) -> MemoryBackend:
        memory = getattr(self, "_memory", None)
        if memory is None:
            raise UnboundMemoryError(operation)
        return memory

    @staticmethod
    def _read_history(memory: Any) -> list[Any]:
        history = getattr(memory, "chat_history", None)
        if history is not None and callable(getattr(history, "get_messages", None)):
            return list(history.get_messages())

        # Stores that keep a chat-memory object with a ``messages`` list
        chat_memory = getattr(memory, "chat_memory", None)
        if chat_memory is not None and hasattr(chat_memory, "messages"):
            return list(chat_memory.messages)
        return []

    @staticmethod
    def _describe(spec: TransformSpec) -> str:
        return "identity" if spec.is_empty else spec.mode.value

    def __repr__(self) -> str:
        memory = getattr(self, "_memory", None)
        return f"MemoryGateway(memory={type(memory).__name__})"
