"""In-process conversation buffer implementing the memory store contract.

``BufferMemory`` keeps turns in an ``InMemoryChatHistory`` and returns them
under a configurable memory key (``history`` by default), either as message
dicts or as a flattened transcript string.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

HUMAN_PREFIX = "Human"
AI_PREFIX = "AI"


class InMemoryChatHistory:
    """Append-only list of ``{"role", "content"}`` messages."""

    def __init__(self, messages: list[dict[str, str]] | None = None) -> None:
        self._messages: list[dict[str, str]] = list(messages or [])

    def add_message(self, role: str, content: str) -> None:
        self._messages.append({"role": role, "content": content})

    def add_user_message(self, content: str) -> None:
        self.add_message("user", content)

    def add_ai_message(self, content: str) -> None:
        self.add_message("assistant", content)

    def get_messages(self) -> list[dict[str, str]]:
        """Return a copy of the stored messages, oldest first."""
        return [dict(m) for m in self._messages]

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)


class BufferMemory:
    """Conversation buffer store.

    Attributes:
        chat_history: History sub-resource holding every saved message
        memory_key: Key the history is returned under
        return_messages: Return message dicts (True) or a transcript string
        input_key: Key read from ``inputs`` in ``save_context``
        output_key: Key read from ``outputs`` in ``save_context``
    """

    def __init__(
        self,
        chat_history: InMemoryChatHistory | None = None,
        memory_key: str = "history",
        return_messages: bool = True,
        input_key: str = "input",
        output_key: str = "output",
    ) -> None:
        self.chat_history = chat_history if chat_history is not None else InMemoryChatHistory()
        self.memory_key = memory_key
        self.return_messages = return_messages
        self.input_key = input_key
        self.output_key = output_key

    @property
    def memory_keys(self) -> list[str]:
        return [self.memory_key]

    def load_memory_variables(self, values: dict[str, Any]) -> dict[str, Any]:
        messages = self.chat_history.get_messages()
        if self.return_messages:
            return {self.memory_key: messages}
        return {self.memory_key: self._transcript(messages)}

    def save_context(self, inputs: dict[str, Any], outputs: dict[str, Any]) -> None:
        if self.input_key not in inputs:
            raise KeyError(f"Missing input key '{self.input_key}' in {list(inputs)}")
        if self.output_key not in outputs:
            raise KeyError(f"Missing output key '{self.output_key}' in {list(outputs)}")

        self.chat_history.add_user_message(str(inputs[self.input_key]))
        self.chat_history.add_ai_message(str(outputs[self.output_key]))
        logger.debug(f"BufferMemory saved turn, {len(self.chat_history)} messages")

    def clear(self) -> None:
        self.chat_history.clear()

    @staticmethod
    def _transcript(messages: list[dict[str, str]]) -> str:
        lines = []
        for m in messages:
            prefix = HUMAN_PREFIX if m["role"] == "user" else AI_PREFIX
            lines.append(f"{prefix}: {m['content']}")
        return "\n".join(lines)
