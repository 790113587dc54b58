"""
Error taxonomy for the retrieval pipeline.

FATAL vs RECOVERABLE:
---------------------
- EmbeddingError: the query could not be embedded. Fatal for the request.
- StoreQueryError: the primary nearest-neighbor query failed. Fatal.
- BoosterError: one booster failed. Recovered inside the pipeline, the
  booster is skipped and the error only shows up in logs and traces.

Callers catch the fatal ones and pick a user-facing fallback
(answer without context, ask the user to rephrase, ...).
"""

from __future__ import annotations


class RetrievalPipelineError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(RetrievalPipelineError):
    """Raised when configuration is missing or malformed."""


class EmbeddingError(RetrievalPipelineError):
    """Raised when the embedder cannot produce a vector for the query."""


class StoreQueryError(RetrievalPipelineError):
    """Raised when a content store query fails."""


class BoosterError(RetrievalPipelineError):
    """A single booster failed. Never propagated to the caller."""

    def __init__(self, booster_name: str, message: str):
        super().__init__(f"Booster '{booster_name}' failed: {message}")
        self.booster_name = booster_name
