"""
Tracer used by the retrieval pipeline.

The pipeline only talks to TracerProtocol / SpanProtocol. get_tracer()
hands out an OpenTelemetry-backed tracer once init_phoenix() has installed
an SDK provider, and a NoOpTracer otherwise, so retrieval never depends on
Phoenix being reachable.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Protocol

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import StatusCode

DEFAULT_SERVICE_NAME = "rag-context-pipeline"


class SpanProtocol(Protocol):
    """What the pipeline does with a span."""

    def set_attribute(self, key: str, value: Any) -> None:
        ...

    def set_status(self, status: str, description: str | None = None) -> None:
        """status is "ok" or "error"."""
        ...

    def record_exception(self, exception: BaseException) -> None:
        ...


class TracerProtocol(Protocol):
    """Opens spans as context managers."""

    def start_span(self, name: str, attributes: dict[str, Any] | None = None) -> Any:
        ...


# ---------------------------------------------------------------------------
# DISABLED TRACING
# ---------------------------------------------------------------------------


class NoOpSpan:
    """Accepts everything, records nothing."""

    def set_attribute(self, key: str, value: Any) -> None:
        pass

    def set_status(self, status: str, description: str | None = None) -> None:
        pass

    def record_exception(self, exception: BaseException) -> None:
        pass


class NoOpTracer:
    """Tracer used when PHOENIX_ENABLED is off or no SDK provider exists."""

    @contextmanager
    def start_span(self, name: str, attributes: dict[str, Any] | None = None) -> Iterator[NoOpSpan]:
        yield NoOpSpan()


# ---------------------------------------------------------------------------
# OPENTELEMETRY ADAPTERS
# ---------------------------------------------------------------------------


class OTelSpan:
    """Adapts an OpenTelemetry span to SpanProtocol."""

    def __init__(self, span: Any):
        self._span = span

    def set_attribute(self, key: str, value: Any) -> None:
        self._span.set_attribute(key, value)

    def set_status(self, status: str, description: str | None = None) -> None:
        if status == "ok":
            # OTel only accepts a description on ERROR
            self._span.set_status(StatusCode.OK)
        else:
            self._span.set_status(StatusCode.ERROR, description)

    def record_exception(self, exception: BaseException) -> None:
        self._span.record_exception(exception)


class OTelTracer:
    """Adapts an OpenTelemetry tracer to TracerProtocol."""

    def __init__(self, tracer: Any):
        self._tracer = tracer

    @contextmanager
    def start_span(self, name: str, attributes: dict[str, Any] | None = None) -> Iterator[OTelSpan]:
        # Recovered booster errors must not fail the span, so callers
        # record exceptions and status themselves.
        with self._tracer.start_as_current_span(
            name,
            attributes=attributes,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            yield OTelSpan(span)


# ---------------------------------------------------------------------------
# FACTORY
# ---------------------------------------------------------------------------


_tracer: TracerProtocol | None = None


def get_tracer(service_name: str = DEFAULT_SERVICE_NAME) -> TracerProtocol:
    """
    Return the process-wide tracer, creating it on first use.

    Args:
        service_name: Instrumentation scope name, only read on the first call

    Returns:
        OTelTracer when tracing is enabled and init_phoenix() installed an
        SDK TracerProvider, NoOpTracer otherwise
    """
    global _tracer
    if _tracer is not None:
        return _tracer

    from rag_context_pipeline.observability.config import get_config

    if get_config().enabled and isinstance(trace.get_tracer_provider(), TracerProvider):
        _tracer = OTelTracer(trace.get_tracer(service_name))
    else:
        _tracer = NoOpTracer()
    return _tracer


def reset_tracer() -> None:
    """Forget the cached tracer. init_phoenix() and tests call this."""
    global _tracer
    _tracer = None
