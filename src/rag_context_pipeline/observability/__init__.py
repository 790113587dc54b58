"""
Tracing for the retrieval pipeline: Arize Phoenix over OpenTelemetry.

Each request produces a retrieval.find_content span with children for the
embedding call, the primary query and every booster. OpenAI embedding
calls are traced by the OpenInference instrumentor.

USAGE:
------
from rag_context_pipeline.observability import init_phoenix, shutdown_phoenix

init_phoenix()      # no-op unless PHOENIX_ENABLED=true
...                 # build and run pipelines; they call get_tracer()
shutdown_phoenix()  # flush pending spans
"""

from __future__ import annotations

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from rag_context_pipeline.observability.config import (
    PhoenixConfig,
    get_config,
    reset_config,
)
from rag_context_pipeline.observability.tracer import (
    TracerProtocol,
    SpanProtocol,
    NoOpTracer,
    NoOpSpan,
    get_tracer,
    reset_tracer,
)
from rag_context_pipeline.observability.attributes import (
    RETRIEVAL_QUERY_TEXT,
    RETRIEVAL_RESULT_COUNT,
    RETRIEVAL_BOOSTER_NAME,
    RETRIEVAL_BOOSTER_APPLIED,
    RETRIEVAL_BOOSTER_FAILED,
    search_attributes,
    result_attributes,
    booster_attributes,
)

logger = logging.getLogger(__name__)

_phoenix_initialized = False


def init_phoenix(config: PhoenixConfig | None = None) -> bool:
    """
    Install an OTLP-exporting tracer provider and the OpenAI instrumentor.

    Call once at start-up, before the first pipeline runs. Failures are
    logged and leave tracing disabled; retrieval keeps working either way.

    Args:
        config: Tracing settings (PHOENIX_* environment if not provided)

    Returns:
        True when spans will be exported
    """
    global _phoenix_initialized
    if _phoenix_initialized:
        return True

    config = config or get_config()

    if not config.enabled:
        logger.debug("Tracing disabled (PHOENIX_ENABLED is off)")
        return False

    try:
        if config.collector_endpoint:
            endpoint = config.collector_endpoint
            logger.info(f"Exporting retrieval spans to {endpoint}")
        else:
            # No collector configured: start a local Phoenix app
            import phoenix as px

            session = px.launch_app()
            endpoint = f"{session.url.rstrip('/')}/v1/traces"
            logger.info(f"Phoenix UI available at: {session.url}")

        provider = TracerProvider(
            resource=Resource.create({"openinference.project.name": config.project_name})
        )
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
        trace.set_tracer_provider(provider)

        from rag_context_pipeline.observability.instrumentation import register_instrumentors
        register_instrumentors()

        reset_tracer()
        _phoenix_initialized = True
        return True

    except ImportError as e:
        logger.warning(f"Phoenix is not installed (pip install .[observability]), tracing disabled: {e}")
        return False
    except Exception as e:
        logger.error(f"Could not initialize tracing, continuing without it: {e}")
        return False


def shutdown_phoenix() -> None:
    """Flush pending spans and return to the NoOpTracer."""
    global _phoenix_initialized

    if not _phoenix_initialized:
        return

    provider = trace.get_tracer_provider()
    if isinstance(provider, TracerProvider):
        try:
            provider.shutdown()
        except Exception as e:
            logger.warning(f"Error flushing spans on shutdown: {e}")

    from rag_context_pipeline.observability.instrumentation import uninstrument
    uninstrument()

    reset_tracer()
    reset_config()
    _phoenix_initialized = False


__all__ = [
    # Initialization
    "init_phoenix",
    "shutdown_phoenix",
    # Config
    "PhoenixConfig",
    "get_config",
    "reset_config",
    # Tracer
    "TracerProtocol",
    "SpanProtocol",
    "NoOpTracer",
    "NoOpSpan",
    "get_tracer",
    "reset_tracer",
    # Attributes
    "RETRIEVAL_QUERY_TEXT",
    "RETRIEVAL_RESULT_COUNT",
    "RETRIEVAL_BOOSTER_NAME",
    "RETRIEVAL_BOOSTER_APPLIED",
    "RETRIEVAL_BOOSTER_FAILED",
    # Helpers
    "search_attributes",
    "result_attributes",
    "booster_attributes",
]
