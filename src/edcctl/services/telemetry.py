"""Span timing for service operations.

Tracing is off unless ``--verbose`` is given.  A ``@traced`` service method
then records a span tree (the method itself plus any ``trace_span`` blocks
it opens, e.g. one per verify group or DSP phase) and attaches it to
``ServiceResult.meta["telemetry"]``.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from edcctl.services.result import ServiceResult

logger = structlog.get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

_tracing: ContextVar[bool] = ContextVar("edcctl_tracing", default=False)
_active: ContextVar[Span | None] = ContextVar("edcctl_active_span", default=None)


@dataclass
class Span:
    name: str
    started: float = field(default_factory=time.perf_counter)
    finished: float | None = None
    children: list[Span] = field(default_factory=list)
    annotations: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        if self.finished is None:
            return 0.0
        return (self.finished - self.started) * 1000

    def end(self) -> None:
        self.finished = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def to_dict(self) -> dict[str, Any]:
        tree: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            tree["annotations"] = dict(self.annotations)
        if self.children:
            tree["children"] = [child.to_dict() for child in self.children]
        return tree


@contextmanager
def _activate(span: Span) -> Generator[Span]:
    token = _active.set(span)
    try:
        yield span
    finally:
        span.end()
        _active.reset(token)


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Time a block as a child of the running operation; yields None when off."""
    parent = _active.get() if _tracing.get() else None
    if parent is None:
        yield None
        return
    child = Span(name=name)
    parent.children.append(child)
    with _activate(child):
        yield child


def traced(func: Callable[P, R]) -> Callable[P, R]:
    """Time a service method and attach the span tree to its ServiceResult.

    The root span is annotated with the outcome and the number of steps.
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        if not _tracing.get():
            return func(*args, **kwargs)

        with _activate(Span(name=func.__qualname__)) as span:
            result = func(*args, **kwargs)
        if not isinstance(result, ServiceResult):
            return result

        span.annotate("ok", result.ok)
        span.annotate("steps", len(result.data.get("steps", [])))
        logger.debug("operation_timed", op=result.op, duration_ms=round(span.duration_ms, 2))
        meta = {**(result.meta or {}), "telemetry": span.to_dict()}
        return result.model_copy(update={"meta": meta})  # type: ignore[return-value]

    return wrapper


def enable_telemetry() -> None:
    _tracing.set(True)


def disable_telemetry() -> None:
    _tracing.set(False)
