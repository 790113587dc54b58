"""
OpenInference instrumentation for the OpenAI SDK.

OpenAIEmbedder calls client.embeddings.create(); once instrumented, every
such call shows up as a child of the retrieval.embed span with model and
token usage attached.
"""

from __future__ import annotations

import logging

from openinference.instrumentation.openai import OpenAIInstrumentor

logger = logging.getLogger(__name__)

_instrumented = False


def register_instrumentors() -> bool:
    """
    Instrument the OpenAI SDK. Safe to call more than once.

    Returns:
        True if the SDK is instrumented
    """
    global _instrumented
    if _instrumented:
        return True

    try:
        OpenAIInstrumentor().instrument()
    except Exception as e:
        logger.warning(f"OpenAI calls will not be traced: {e}")
        return False

    logger.info("OpenAI embedding calls are instrumented")
    _instrumented = True
    return True


def uninstrument() -> None:
    """Undo register_instrumentors()."""
    global _instrumented
    if _instrumented:
        OpenAIInstrumentor().uninstrument()
    _instrumented = False
