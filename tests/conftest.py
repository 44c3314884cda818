"""
Memory Gateway test fixtures
Fake stores, host contexts and log capture shared across tests.
"""
from typing import Any

import pytest
from loguru import logger

from memory_gateway.config import GatewayConfig
from memory_gateway.storage import BufferMemory, InMemoryChatHistory
from memory_gateway.trace import RecordingTraceSink


IDENTITY_CONFIG = GatewayConfig(filter_before_save="", filter_after_retrieve="")


class KeylessStore:
    """Store with only the two required operations and a history sub-resource."""

    def __init__(self, field: str = "chat_history"):
        self.field = field
        self.chat_history = InMemoryChatHistory()
        self.saved: list[tuple[dict, dict]] = []

    def load_memory_variables(self, values: dict[str, Any]) -> dict[str, Any]:
        return {self.field: self.chat_history.get_messages(), "extra": values.get("extra")}

    def save_context(self, inputs: dict[str, Any], outputs: dict[str, Any]) -> str:
        self.saved.append((inputs, outputs))
        self.chat_history.add_user_message(inputs["input"])
        self.chat_history.add_ai_message(outputs["output"])
        return "saved"


class FailingStore(KeylessStore):
    """Store whose writes fail."""

    def save_context(self, inputs, outputs):
        raise ConnectionError("database unavailable")


class FakeHost:
    """Host execution context recording traced data."""

    def __init__(self, memory=None, params: dict[str, Any] | None = None):
        self.memory = memory
        self.params = params or {}
        self.inputs: list[tuple[str, list]] = []
        self.outputs: list[tuple[str, int, list]] = []

    def get_node_parameter(self, name, item_index, default=None):
        return self.params.get(name, default)

    def get_input_connection_data(self, connection_type, index):
        return self.memory

    def add_input_data(self, connection_type, data):
        self.inputs.append((connection_type, data))
        return len(self.inputs) - 1

    def add_output_data(self, connection_type, index, data):
        self.outputs.append((connection_type, index, data))


@pytest.fixture
def buffer_memory():
    """BufferMemory returning messages under ``history``."""
    return BufferMemory()


@pytest.fixture
def chat_history_memory():
    """Store returning messages under ``chat_history`` without memory_keys."""
    return KeylessStore()


@pytest.fixture
def sink():
    return RecordingTraceSink()


@pytest.fixture
def identity_config():
    return IDENTITY_CONFIG


@pytest.fixture
def log_messages():
    """Capture loguru records as ``(level, message)`` tuples."""
    records: list[tuple[str, str]] = []
    handler_id = logger.add(
        lambda m: records.append((m.record["level"].name, m.record["message"])),
        level="DEBUG",
    )
    yield records
    logger.remove(handler_id)


@pytest.fixture
def history_only_memory():
    """Store returning messages under ``history`` only."""
    return KeylessStore(field="history")


@pytest.fixture
def failing_memory():
    return FailingStore()


@pytest.fixture
def make_host():
    """Factory for fake host contexts."""
    return FakeHost
