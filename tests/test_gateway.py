"""Tests for MemoryGateway.

Tests cover:
- Binding and the unbound-store guards
- Substitutability for the wrapped store
- History field selection on load
- Input/output fallbacks on save
- Trace events around both intercepted calls
- Store error propagation
"""

import pytest

from memory_gateway import (
    BufferMemory,
    GatewayConfig,
    MemoryBackend,
    MemoryGateway,
    NoStoreConnectedError,
    TraceAction,
    TracePhase,
    UnboundMemoryError,
)


# ---------------------------------------------------------------------------
# Binding
# ---------------------------------------------------------------------------


class TestBinding:
    def test_requires_a_store(self):
        with pytest.raises(NoStoreConnectedError, match="No internal memory connected!"):
            MemoryGateway(None)

    def test_memory_is_read_only(self, buffer_memory, identity_config):
        gateway = MemoryGateway(buffer_memory, identity_config)
        assert gateway.memory is buffer_memory
        with pytest.raises(AttributeError):
            gateway.memory = BufferMemory()

    def test_unbound_gateway_raises(self):
        gateway = MemoryGateway.__new__(MemoryGateway)
        with pytest.raises(UnboundMemoryError) as exc_info:
            gateway.save_context({"input": "a"}, {"output": "b"})
        assert exc_info.value.operation == "save_context"
        with pytest.raises(UnboundMemoryError):
            gateway.load_memory_variables({})
        assert "MemoryGateway" in repr(gateway)

    def test_satisfies_memory_protocol(self, buffer_memory):
        assert isinstance(MemoryGateway(buffer_memory), MemoryBackend)

    def test_default_config(self, buffer_memory):
        gateway = MemoryGateway(buffer_memory)
        assert not gateway.before_save.is_empty
        assert not gateway.after_retrieve.is_empty

    def test_bind_is_logged(self, buffer_memory, identity_config, log_messages):
        MemoryGateway(buffer_memory, identity_config)
        assert any(
            level == "INFO" and "BufferMemory" in m for level, m in log_messages
        )


# ---------------------------------------------------------------------------
# Delegated properties
# ---------------------------------------------------------------------------


class TestDelegation:
    def test_memory_keys_from_store(self, buffer_memory):
        assert MemoryGateway(buffer_memory).memory_keys == ["history"]

    def test_memory_keys_fallback(self, chat_history_memory):
        assert MemoryGateway(chat_history_memory).memory_keys == ["chat_history"]

    def test_empty_memory_keys_are_kept(self, chat_history_memory):
        chat_history_memory.memory_keys = []
        assert MemoryGateway(chat_history_memory).memory_keys == []

    def test_chat_history_passthrough(self, buffer_memory):
        assert MemoryGateway(buffer_memory).chat_history is buffer_memory.chat_history

    def test_clear_delegates(self, buffer_memory, identity_config):
        gateway = MemoryGateway(buffer_memory, identity_config)
        gateway.save_context({"input": "a"}, {"output": "b"})
        gateway.clear()
        assert len(buffer_memory.chat_history) == 0

    def test_clear_without_store_support(self, chat_history_memory):
        assert MemoryGateway(chat_history_memory).clear() is None


# ---------------------------------------------------------------------------
# Substitutability
# ---------------------------------------------------------------------------


def _conversation(memory):
    memory.save_context({"input": "hi"}, {"output": "hello"})
    memory.save_context({"input": "how are you"}, {"output": "fine"})
    return memory.load_memory_variables({})


class TestSubstitutability:
    """With identity transforms the gateway is indistinguishable from its store."""

    def test_same_observations_as_store(self, identity_config):
        direct = _conversation(BufferMemory())
        proxied = _conversation(MemoryGateway(BufferMemory(), identity_config))
        assert proxied == direct

    def test_transcript_store(self, identity_config):
        direct = _conversation(BufferMemory(return_messages=False))
        proxied = _conversation(
            MemoryGateway(BufferMemory(return_messages=False), identity_config)
        )
        assert proxied == direct == {"history": "Human: hi\nAI: hello\nHuman: how are you\nAI: fine"}

    def test_load_is_idempotent(self, buffer_memory, identity_config):
        gateway = MemoryGateway(buffer_memory, identity_config)
        gateway.save_context({"input": "a"}, {"output": "b"})
        assert gateway.load_memory_variables({}) == gateway.load_memory_variables({})

    def test_identity_leaves_history_object(self, chat_history_memory, identity_config):
        gateway = MemoryGateway(chat_history_memory, identity_config)
        assert gateway.load_memory_variables({"extra": 1}) == {
            "chat_history": [],
            "extra": 1,
        }


# ---------------------------------------------------------------------------
# Load
# ---------------------------------------------------------------------------


KEEP_USER = GatewayConfig(
    filter_before_save="",
    filter_after_retrieve="[m for m in messages if m['role'] == 'user']",
)


class TestLoadMemoryVariables:
    def test_filters_history_field(self, buffer_memory):
        gateway = MemoryGateway(buffer_memory, KEEP_USER)
        gateway.save_context({"input": "a"}, {"output": "b"})
        assert gateway.load_memory_variables({}) == {
            "history": [{"role": "user", "content": "a"}]
        }

    def test_filters_chat_history_field_and_keeps_others(self, chat_history_memory):
        gateway = MemoryGateway(chat_history_memory, KEEP_USER)
        gateway.save_context({"input": "a"}, {"output": "b"})
        data = gateway.load_memory_variables({"extra": "kept"})
        assert data == {
            "chat_history": [{"role": "user", "content": "a"}],
            "extra": "kept",
        }

    def test_chat_history_wins_over_history(self):
        class BothFields:
            def load_memory_variables(self, values):
                return {"chat_history": ["x"], "history": ["y"]}

            def save_context(self, inputs, outputs):
                return None

        config = GatewayConfig(filter_after_retrieve="messages + ['!']")
        data = MemoryGateway(BothFields(), config).load_memory_variables({})
        assert data == {"chat_history": ["x", "!"], "history": ["y"]}

    def test_no_history_field_is_left_alone(self):
        class NoHistory:
            def load_memory_variables(self, values):
                return {"context": "facts"}

            def save_context(self, inputs, outputs):
                return None

        config = GatewayConfig(filter_after_retrieve="['injected']")
        data = MemoryGateway(NoHistory(), config).load_memory_variables({})
        assert data == {"context": "facts"}

    def test_failing_transform_returns_store_data(self, buffer_memory, log_messages):
        config = GatewayConfig(filter_after_retrieve="messages[99]")
        gateway = MemoryGateway(buffer_memory, config)
        buffer_memory.save_context({"input": "a"}, {"output": "b"})
        assert gateway.load_memory_variables({}) == buffer_memory.load_memory_variables({})
        assert any(level == "ERROR" for level, _ in log_messages)


# ---------------------------------------------------------------------------
# Save
# ---------------------------------------------------------------------------


class TestSaveContext:
    def test_default_transform_cleans_output(self, buffer_memory):
        gateway = MemoryGateway(buffer_memory)
        gateway.save_context({"input": "Hi"}, {"output": "[Used tools: x] Hello there;"})
        assert buffer_memory.chat_history.get_messages() == [
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello there"},
        ]

    def test_question_and_response_fallbacks(self, chat_history_memory, identity_config):
        gateway = MemoryGateway(chat_history_memory, identity_config)
        gateway.save_context({"question": "why"}, {"response": "because"})
        assert chat_history_memory.saved == [({"input": "why"}, {"output": "because"})]

    def test_primary_keys_win(self, chat_history_memory, identity_config):
        gateway = MemoryGateway(chat_history_memory, identity_config)
        gateway.save_context(
            {"input": "a", "question": "q"}, {"output": "b", "response": "r"}
        )
        assert chat_history_memory.saved == [({"input": "a"}, {"output": "b"})]

    def test_missing_values_become_empty(self, chat_history_memory, identity_config):
        gateway = MemoryGateway(chat_history_memory, identity_config)
        gateway.save_context({}, {"output": None})
        assert chat_history_memory.saved == [({"input": ""}, {"output": ""})]

    def test_non_string_values_are_coerced(self, chat_history_memory, identity_config):
        gateway = MemoryGateway(chat_history_memory, identity_config)
        gateway.save_context({"input": 42}, {"output": "ok"})
        assert chat_history_memory.saved == [({"input": "42"}, {"output": "ok"})]

    def test_returns_store_result(self, chat_history_memory, identity_config):
        gateway = MemoryGateway(chat_history_memory, identity_config)
        assert gateway.save_context({"input": "a"}, {"output": "b"}) == "saved"

    def test_partial_transform_result(self, chat_history_memory):
        config = GatewayConfig(
            filter_before_save="{'output': output.lower()}",
            filter_after_retrieve="",
        )
        gateway = MemoryGateway(chat_history_memory, config)
        gateway.save_context({"input": "KEEP"}, {"output": "LOWER"})
        assert chat_history_memory.saved == [({"input": "KEEP"}, {"output": "lower"})]

    def test_store_errors_propagate(self, failing_memory, identity_config):
        gateway = MemoryGateway(failing_memory, identity_config)
        with pytest.raises(ConnectionError, match="database unavailable"):
            gateway.save_context({"input": "a"}, {"output": "b"})


# ---------------------------------------------------------------------------
# Tracing
# ---------------------------------------------------------------------------


class TestTracing:
    def test_save_trace(self, chat_history_memory, identity_config, sink):
        gateway = MemoryGateway(chat_history_memory, identity_config, trace_sink=sink)
        gateway.save_context({"input": "a"}, {"output": "b"})

        begin, end = sink.for_action(TraceAction.SAVE_CONTEXT)
        assert begin.phase is TracePhase.BEGIN
        assert begin.payload == {"input": "a", "output": "b"}
        assert end.phase is TracePhase.END
        assert end.token == begin.token
        assert end.payload == {
            "chat_history": [
                {"role": "user", "content": "a"},
                {"role": "assistant", "content": "b"},
            ]
        }

    def test_save_trace_shows_unfiltered_input(self, chat_history_memory, sink):
        config = GatewayConfig(filter_before_save="{'output': 'x'}")
        gateway = MemoryGateway(chat_history_memory, config, trace_sink=sink)
        gateway.save_context({"input": "a"}, {"output": "b"})
        begin = sink.for_action(TraceAction.SAVE_CONTEXT)[0]
        assert begin.payload == {"input": "a", "output": "b"}

    def test_load_trace(self, buffer_memory, sink):
        gateway = MemoryGateway(buffer_memory, KEEP_USER, trace_sink=sink)
        buffer_memory.save_context({"input": "a"}, {"output": "b"})
        gateway.load_memory_variables({"k": "v"})

        begin, end = sink.for_action(TraceAction.LOAD_MEMORY_VARIABLES)
        assert begin.payload == {"values": {"k": "v"}}
        assert end.payload == {"chat_history": [{"role": "user", "content": "a"}]}

    def test_load_trace_without_history(self, sink):
        class NoHistory:
            def load_memory_variables(self, values):
                return {}

            def save_context(self, inputs, outputs):
                return None

        gateway = MemoryGateway(NoHistory(), trace_sink=sink)
        gateway.load_memory_variables({})
        end = sink.for_action(TraceAction.LOAD_MEMORY_VARIABLES)[-1]
        assert end.payload == {"chat_history": []}

    def test_store_error_leaves_trace_open(self, failing_memory, identity_config, sink):
        gateway = MemoryGateway(failing_memory, identity_config, trace_sink=sink)
        with pytest.raises(ConnectionError):
            gateway.save_context({"input": "a"}, {"output": "b"})
        assert [e.phase for e in sink.events] == [TracePhase.BEGIN]

    def test_disabled_tracing(self, buffer_memory, sink):
        config = GatewayConfig(trace_enabled=False)
        gateway = MemoryGateway(buffer_memory, config, trace_sink=sink)
        gateway.save_context({"input": "a"}, {"output": "b"})
        gateway.load_memory_variables({})
        assert sink.events == []

    def test_save_trace_reads_chat_memory(self, identity_config, sink):
        class ChatMemory:
            def __init__(self):
                self.messages = []

        class LegacyStore:
            def __init__(self):
                self.chat_memory = ChatMemory()

            def load_memory_variables(self, values):
                return {"history": list(self.chat_memory.messages)}

            def save_context(self, inputs, outputs):
                self.chat_memory.messages += [inputs["input"], outputs["output"]]

        gateway = MemoryGateway(LegacyStore(), identity_config, trace_sink=sink)
        gateway.save_context({"input": "a"}, {"output": "b"})
        end = sink.for_action(TraceAction.SAVE_CONTEXT)[-1]
        assert end.payload == {"chat_history": ["a", "b"]}
