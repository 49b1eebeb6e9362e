"""ServiceResult and ServiceError: the contract between services and the CLI.

Every service operation returns a :class:`ServiceResult`.  Multi-step
operations list what they did in ``data["steps"]`` as serialized
:class:`Step` records, so human, JSON and quiet renderers all see the
same sequence.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

StepStatus = Literal["ok", "skipped", "warning", "dry-run", "failed"]


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class Step(BaseModel):
    """One executed (or deliberately not executed) step of an operation."""

    model_config = {"frozen": True}

    name: str
    status: StepStatus = "ok"
    detail: str = ""
    fields: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Return type for all service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"edc_upgrade"``).
        data: Operation-specific payload; ``steps`` when multi-step.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (dry-run commands, timing).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None
