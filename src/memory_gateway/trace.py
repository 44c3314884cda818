"""Trace emission around intercepted memory calls.

Tracing is observational only: a failing sink is logged and ignored so it
can never change what the caller receives.
"""

from __future__ import annotations

import itertools
from typing import Any, Hashable

from loguru import logger

from .core.interfaces import TraceSink
from .core.models import TraceAction, TraceEvent, TracePhase


class LoguruTraceSink:
    """Writes trace events to the loguru logger at debug level."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)

    def begin(self, event: TraceEvent) -> Hashable:
        token = next(self._counter)
        logger.debug(
            f"[trace {token}] {event.action.value} begin: {event.payload}"
        )
        return token

    def end(self, token: Hashable | None, event: TraceEvent) -> None:
        logger.debug(f"[trace {token}] {event.action.value} end: {event.payload}")


class RecordingTraceSink:
    """Keeps every trace event in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[TraceEvent] = []
        self._counter = itertools.count()

    def begin(self, event: TraceEvent) -> Hashable:
        token = next(self._counter)
        self.events.append(event.model_copy(update={"token": token}))
        return token

    def end(self, token: Hashable | None, event: TraceEvent) -> None:
        self.events.append(event.model_copy(update={"token": token}))

    def for_action(self, action: TraceAction) -> list[TraceEvent]:
        return [e for e in self.events if e.action == action]

    def clear(self) -> None:
        self.events.clear()


class TraceEmitter:
    """Emits begin/end trace events to a sink, best effort.

    Attributes:
        sink: Destination for events (``LoguruTraceSink`` when not given)
        enabled: When False nothing is emitted and ``begin`` returns None
    """

    def __init__(self, sink: TraceSink | None = None, enabled: bool = True) -> None:
        self.sink = sink if sink is not None else LoguruTraceSink()
        self.enabled = enabled

    def begin(self, action: TraceAction, payload: dict[str, Any]) -> Hashable | None:
        """Emit a begin event and return the sink's correlation token."""
        if not self.enabled:
            return None
        event = TraceEvent(action=action, phase=TracePhase.BEGIN, payload=payload)
        try:
            return self.sink.begin(event)
        except Exception as e:
            logger.warning(f"Dropping {action.value} begin trace: {e}")
            return None

    def end(
        self,
        token: Hashable | None,
        action: TraceAction,
        payload: dict[str, Any],
    ) -> None:
        """Emit the end event matching ``token``."""
        if not self.enabled:
            return
        event = TraceEvent(
            action=action, phase=TracePhase.END, payload=payload, token=token
        )
        try:
            self.sink.end(token, event)
        except Exception as e:
            logger.warning(f"Dropping {action.value} end trace: {e}")
