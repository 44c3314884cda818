"""Memory gateway data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransformHook(str, Enum):
    """Interception points where user transform code runs."""

    BEFORE_SAVE = "before_save"
    AFTER_RETRIEVE = "after_retrieve"

    @property
    def function_name(self) -> str:
        """Canonical function name a named-function transform must define."""
        return f"filter_{self.value}"

    @property
    def parameters(self) -> tuple[str, ...]:
        """Canonical positional parameters passed to the transform."""
        if self is TransformHook.BEFORE_SAVE:
            return ("input", "output")
        return ("messages",)


class TransformMode(str, Enum):
    """How transform source is turned into a callable."""

    NAMED_FUNCTION = "named_function"
    BARE_EXPRESSION = "bare_expression"

    @classmethod
    def detect(cls, hook: TransformHook, source: str) -> "TransformMode":
        """Resolve the mode with a plain substring check.

        Any occurrence of ``def <canonical name>`` selects the named form,
        including one inside a comment or a string literal.
        """
        if f"def {hook.function_name}" in source:
            return cls.NAMED_FUNCTION
        return cls.BARE_EXPRESSION


@dataclass(frozen=True)
class TransformSpec:
    """User transform source bound to the hook it runs at."""

    hook: TransformHook
    source: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.source or not self.source.strip()

    @property
    def mode(self) -> TransformMode:
        return TransformMode.detect(self.hook, self.source)


class ConversationTurn(BaseModel):
    """One input/output exchange on its way to the store."""

    model_config = ConfigDict(frozen=True)

    input: str = ""
    output: str = ""

    def as_dict(self) -> dict[str, str]:
        return {"input": self.input, "output": self.output}


class TraceAction(str, Enum):
    LOAD_MEMORY_VARIABLES = "load_memory_variables"
    SAVE_CONTEXT = "save_context"


class TracePhase(str, Enum):
    BEGIN = "begin"
    END = "end"


class TraceEvent(BaseModel):
    """A begin or end observation around an intercepted memory call."""

    action: TraceAction
    phase: TracePhase
    payload: dict[str, Any] = Field(default_factory=dict)
    token: Any = None
    timestamp: datetime = Field(default_factory=_utcnow)
