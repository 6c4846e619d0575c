"""@traced decorator and span helpers for provisioning and correlation.

Span attributes are limited to identifiers (principal, secret id, event id,
group); secret values and password hashes never reach a span.
"""

import inspect
from collections.abc import Callable
from functools import wraps
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

_SAFE_ATTRS = ("principal_name", "secret_id", "event_id", "group_name")


def _identifiers(bound: inspect.BoundArguments) -> dict[str, str]:
    """Collect safe identifiers from arguments, including fields of a CreationEvent."""
    found: dict[str, str] = {}
    for name, value in bound.arguments.items():
        if name in _SAFE_ATTRS and isinstance(value, str):
            found[name] = value
            continue
        for attr in _SAFE_ATTRS:
            field_value = getattr(value, attr, None)
            if isinstance(field_value, str):
                found.setdefault(attr, field_value)
    return found


def traced(operation_name: str | None = None) -> Callable:
    """Run a coroutine function inside a span named operation_name.

    Exceptions mark the span as error and propagate unchanged; cancellation
    is not recorded as an error.
    """

    def decorator(func: Callable) -> Callable:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"traced expects a coroutine function, got {func!r}")
        tracer = trace.get_tracer(func.__module__)
        span_name = operation_name or f"{func.__module__}.{func.__qualname__}"
        signature = inspect.signature(func)

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(span_name) as span:
                try:
                    bound = signature.bind(*args, **kwargs)
                except TypeError:
                    bound = None
                if bound is not None:
                    for key, value in _identifiers(bound).items():
                        span.set_attribute(f"iamsync.{key}", value)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise
                span.set_status(Status(StatusCode.OK))
                return result

        return wrapper

    return decorator


def add_span_attributes(**attributes: str | int | float | bool) -> None:
    """Set attributes on the current span, if one is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        for key, value in attributes.items():
            span.set_attribute(f"iamsync.{key}", value)


def add_span_event(name: str, attributes: dict[str, Any] | None = None) -> None:
    span = trace.get_current_span()
    if span.is_recording():
        span.add_event(name, attributes=attributes or {})
