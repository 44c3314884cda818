"""Host integration for the Memory Gateway node.

``NODE_DESCRIPTION`` is static registration data for the host's node
palette. ``MemoryGatewayNode.supply_data`` is what the host calls to obtain a
gateway bound to the single memory store connected to the node's input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Hashable, Protocol, runtime_checkable

from .config import GatewayConfig
from .config_loader import validate_config
from .core.exceptions import NoStoreConnectedError
from .core.models import TraceEvent
from .gateway import MemoryGateway
from .transform.defaults import DEFAULT_AFTER_RETRIEVE, DEFAULT_BEFORE_SAVE

AI_MEMORY = "ai_memory"

NODE_DESCRIPTION: dict[str, Any] = {
    "display_name": "Memory Gateway",
    "name": "memoryGateway",
    "icon": "fa:filter",
    "group": ["transform"],
    "version": 1,
    "description": "Filter and transform memory content before storage",
    "defaults": {"name": "Memory Gateway"},
    "codex": {
        "categories": ["AI"],
        "subcategories": {"AI": ["Memory"], "Memory": ["Other memories"]},
    },
    "inputs": [
        {
            "display_name": "Internal Memory",
            "type": AI_MEMORY,
            "required": True,
            "max_connections": 1,
        }
    ],
    "outputs": [
        {
            "display_name": "Memory",
            "type": AI_MEMORY,
            "required": True,
            "max_connections": 1,
        }
    ],
    "output_names": ["Memory"],
    "properties": [
        {
            "display_name": "Internal Memory Connected",
            "name": "internalMemoryNotice",
            "type": "notice",
            "default": "Connect ONE Memory node (Postgres, Redis, etc.) to the input above",
        },
        {
            "display_name": "Filter Before Save",
            "name": "filterBeforeSave",
            "type": "string",
            "type_options": {"editor": "code", "editor_language": "python", "rows": 15},
            "default": DEFAULT_BEFORE_SAVE,
            "description": "Python code that filters data BEFORE saving to internal memory",
        },
        {
            "display_name": "Filter After Retrieve",
            "name": "filterAfterRetrieve",
            "type": "string",
            "type_options": {"editor": "code", "editor_language": "python", "rows": 12},
            "default": DEFAULT_AFTER_RETRIEVE,
            "description": "Python code that filters data AFTER retrieving from internal memory",
        },
    ],
}


@runtime_checkable
class HostContext(Protocol):
    """Execution context the host passes to ``supply_data``."""

    def get_node_parameter(self, name: str, item_index: int, default: Any = None) -> Any:
        ...

    def get_input_connection_data(self, connection_type: str, index: int) -> Any:
        ...

    def add_input_data(self, connection_type: str, data: list) -> int:
        ...

    def add_output_data(self, connection_type: str, index: int, data: list) -> None:
        ...


class HostTraceSink:
    """Reports trace events through the host's node input/output data panel."""

    def __init__(self, context: HostContext, connection_type: str = AI_MEMORY):
        self.context = context
        self.connection_type = connection_type

    def begin(self, event: TraceEvent) -> Hashable:
        return self.context.add_input_data(
            self.connection_type, [[{"json": self._json(event)}]]
        )

    def end(self, token: Hashable | None, event: TraceEvent) -> None:
        self.context.add_output_data(
            self.connection_type, token, [[{"json": self._json(event)}]]
        )

    @staticmethod
    def _json(event: TraceEvent) -> dict[str, Any]:
        return {"action": event.action.value, **event.payload}


@dataclass
class SuppliedData:
    """What ``supply_data`` hands back to the host."""

    response: MemoryGateway


class MemoryGatewayNode:
    """Node entry point; holds only static description data."""

    description = NODE_DESCRIPTION

    def supply_data(self, context: HostContext, item_index: int = 0) -> SuppliedData:
        """Build a gateway around the connected memory store.

        Args:
            context: Host execution context
            item_index: Index of the item whose parameters apply

        Raises:
            ValidationError: If the filter parameters are not valid
            NoStoreConnectedError: If no memory store is connected
        """
        config = self._read_config(context, item_index)

        connected = context.get_input_connection_data(AI_MEMORY, 0)
        if connected is None:
            raise NoStoreConnectedError()

        gateway = MemoryGateway(
            connected, config=config, trace_sink=HostTraceSink(context)
        )
        return SuppliedData(response=gateway)

    @staticmethod
    def _read_config(context: HostContext, item_index: int) -> GatewayConfig:
        params = {
            "filterBeforeSave": context.get_node_parameter(
                "filterBeforeSave", item_index, ""
            ),
            "filterAfterRetrieve": context.get_node_parameter(
                "filterAfterRetrieve", item_index, ""
            ),
        }
        return validate_config(params)
