"""
Memory gateway interface definitions

Protocols keep the gateway decoupled from concrete stores, trace sinks and
host runtimes.
"""

from __future__ import annotations

from typing import Any, Hashable, Protocol, Sequence, runtime_checkable

from .models import TraceEvent


@runtime_checkable
class ChatHistory(Protocol):
    """History sub-resource of a memory store"""

    def get_messages(self) -> Sequence[Any]:
        """
        Return the full conversation history

        Returns:
            Messages in chronological order
        """
        ...


@runtime_checkable
class MemoryBackend(Protocol):
    """
    Conversation memory store interface

    The capability set both the wrapped store and the gateway expose.
    ``clear`` and ``memory_keys`` are optional on stores; the gateway checks
    for them at call time.
    """

    def load_memory_variables(self, values: dict[str, Any]) -> dict[str, Any]:
        """
        Load memory variables for the next prompt

        Args:
            values: Chain inputs for the current call

        Returns:
            Mapping holding the history under ``chat_history`` or ``history``
        """
        ...

    def save_context(
        self,
        inputs: dict[str, Any],
        outputs: dict[str, Any],
    ) -> Any:
        """
        Save one conversation turn

        Args:
            inputs: Mapping with the user input under ``input``
            outputs: Mapping with the AI output under ``output``
        """
        ...


@runtime_checkable
class TraceSink(Protocol):
    """Destination for begin/end trace events"""

    def begin(self, event: TraceEvent) -> Hashable | None:
        """
        Record a begin event

        Returns:
            Correlation token passed back to ``end``
        """
        ...

    def end(self, token: Hashable | None, event: TraceEvent) -> None:
        """Record the end event matching ``token``"""
        ...
