"""User transform execution and the default filter sources."""

from .defaults import (
    DEFAULT_AFTER_RETRIEVE,
    DEFAULT_BEFORE_SAVE,
    DEFAULT_MAX_LENGTH,
    TRUNCATION_MARKER,
    render_before_save_source,
    truncate,
)
from .executor import (
    DEFAULT_ALLOWED_MODULES,
    DEFAULT_TIMEOUT_SECONDS,
    TransformExecutor,
)

__all__ = [
    "DEFAULT_AFTER_RETRIEVE",
    "DEFAULT_BEFORE_SAVE",
    "DEFAULT_MAX_LENGTH",
    "TRUNCATION_MARKER",
    "render_before_save_source",
    "truncate",
    "DEFAULT_ALLOWED_MODULES",
    "DEFAULT_TIMEOUT_SECONDS",
    "TransformExecutor",
]
