"""OpenTelemetry tracing decorators."""

import functools
import inspect
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span

F = TypeVar("F", bound=Callable[..., Any])


@contextmanager
def _operation_span(tracer: trace.Tracer, name: str, func_name: str) -> Iterator[Span]:
    """Open a span that records the outcome of the wrapped call."""
    with tracer.start_as_current_span(name) as span:
        span.set_attribute("directory.operation", name)
        span.set_attribute("function.name", func_name)
        try:
            yield span
        except Exception as e:
            span.set_attribute("success", False)
            span.set_attribute("error.type", type(e).__name__)
            span.record_exception(e)
            raise
        span.set_attribute("success", True)


def traced(span_name: str | None = None, tracer_name: str = "restaurant-directory") -> Callable[[F], F]:
    """Wrap a function, sync or async, in an OpenTelemetry span.

    Args:
        span_name: Name for the span (defaults to the function name)
        tracer_name: Instrumentation scope for the tracer

    Example:
        @traced("menu.add_item")
        async def add_menu_item(...) -> Menu:
            ...
    """

    def decorator(func: F) -> F:
        name = span_name or func.__name__
        tracer = trace.get_tracer(tracer_name)

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with _operation_span(tracer, name, func.__name__):
                    return await func(*args, **kwargs)

            return async_wrapper  # type: ignore

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with _operation_span(tracer, name, func.__name__):
                return func(*args, **kwargs)

        return sync_wrapper  # type: ignore

    return decorator
