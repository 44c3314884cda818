"""Memory gateway configuration models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .transform.defaults import DEFAULT_AFTER_RETRIEVE, DEFAULT_BEFORE_SAVE
from .transform.executor import DEFAULT_ALLOWED_MODULES, DEFAULT_TIMEOUT_SECONDS


class TransformConfig(BaseModel):
    """Sandbox limits for user transform code."""

    model_config = ConfigDict(populate_by_name=True)

    timeout_seconds: float = Field(
        DEFAULT_TIMEOUT_SECONDS, gt=0, alias="timeoutSeconds"
    )
    allowed_modules: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_MODULES),
        alias="allowedModules",
    )

    @field_validator("allowed_modules")
    @classmethod
    def _top_level_only(cls, modules: list[str]) -> list[str]:
        for name in modules:
            if not name or "." in name or not name.isidentifier():
                raise ValueError(
                    f"allowed_modules entries must be top-level module names: {name!r}"
                )
        return modules


class GatewayConfig(BaseModel):
    """Host-supplied gateway settings.

    Field names are accepted in snake_case and in the host's camelCase form
    (``filterBeforeSave``, ``filterAfterRetrieve``).
    """

    model_config = ConfigDict(populate_by_name=True)

    filter_before_save: str = Field(DEFAULT_BEFORE_SAVE, alias="filterBeforeSave")
    filter_after_retrieve: str = Field(
        DEFAULT_AFTER_RETRIEVE, alias="filterAfterRetrieve"
    )
    transform: TransformConfig = Field(default_factory=TransformConfig)
    trace_enabled: bool = Field(True, alias="traceEnabled")

    @field_validator("filter_before_save", "filter_after_retrieve", mode="before")
    @classmethod
    def _none_means_identity(cls, value):
        return "" if value is None else value
