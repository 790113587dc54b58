"""
Embedded content model for the retrieval system.

Single responsibility: Define the structure of content
stored in content stores.
"""

from dataclasses import dataclass, field
from typing import Any

import numpy as np

from rag_context_pipeline.core.protocols import ContentItem


@dataclass
class EmbeddedContent:
    """
    A piece of content with its embedding, as stored.

    This is the internal representation used by content stores.
    Queries hand out immutable ContentItem/ScoredResult instead
    (defined in core.protocols).
    """
    text: str
    source_name: str
    url: str = ""
    version: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    embedding: np.ndarray | None = None

    def to_content_item(self) -> ContentItem:
        return ContentItem(
            text=self.text,
            source_name=self.source_name,
            url=self.url,
            version=self.version,
            metadata=dict(self.metadata),
        )
