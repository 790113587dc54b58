"""
Documentation knowledge base seed data.

A small corpus spread over several sources so boosters have something
to work with: the product manual ("snooty-docs"), developer articles
("devcenter") and course material ("university").
In production, this would come from the ingestion pipeline.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Sequence

from rag_context_pipeline.retrieval.content import EmbeddedContent

if TYPE_CHECKING:
    from rag_context_pipeline.core import Embedder

logger = logging.getLogger(__name__)

MANUAL = "snooty-docs"
DEVCENTER = "devcenter"
UNIVERSITY = "university"


def get_documentation_content() -> list[EmbeddedContent]:
    """Get seed content for the documentation knowledge base."""
    return [
        EmbeddedContent(
            text="""To create an index on a collection, call db.collection.createIndex() with a
document that lists the fields and their sort order, for example
db.orders.createIndex({ customerId: 1, orderDate: -1 }). Indexes support efficient
execution of queries; without them the server must scan every document.""",
            source_name=MANUAL,
            url="https://www.mongodb.com/docs/manual/indexes/",
            version="v7.0",
            metadata={"page_rank": 5, "tags": "indexes"},
        ),
        EmbeddedContent(
            text="""The $lookup aggregation stage performs a left outer join to a collection in
the same database. It adds an array field to each input document containing the
matching documents from the joined collection.""",
            source_name=MANUAL,
            url="https://www.mongodb.com/docs/manual/reference/operator/aggregation/lookup/",
            version="v7.0",
            metadata={"page_rank": 4, "tags": "aggregation"},
        ),
        EmbeddedContent(
            text="""Transactions let you read and write documents across multiple collections
atomically. Start a session, call session.startTransaction(), run the operations with
that session and then commit or abort the transaction.""",
            source_name=MANUAL,
            url="https://www.mongodb.com/docs/manual/core/transactions/",
            version="v7.0",
            metadata={"page_rank": 4, "tags": "transactions"},
        ),
        EmbeddedContent(
            text="""Change streams let applications subscribe to real-time data changes on a
collection, database or deployment. Open one with collection.watch() and iterate the
returned cursor to receive change events.""",
            source_name=MANUAL,
            url="https://www.mongodb.com/docs/manual/changeStreams/",
            version="v7.0",
            metadata={"page_rank": 3, "tags": "change streams"},
        ),
        EmbeddedContent(
            text="""Atlas Vector Search lets you store vector embeddings next to your data and
query them with the $vectorSearch aggregation stage. Define a vector search index on the
embedding field, then pass a query vector, numCandidates and limit.""",
            source_name=MANUAL,
            url="https://www.mongodb.com/docs/atlas/atlas-vector-search/vector-search-stage/",
            version=None,
            metadata={"page_rank": 5, "tags": "vector search"},
        ),
        EmbeddedContent(
            text="""Building a RAG chatbot with vector search: chunk your documentation, create
embeddings for every chunk, store them in a collection with a vector search index, and at
question time embed the user query and retrieve the nearest chunks as prompt context.""",
            source_name=DEVCENTER,
            url="https://www.mongodb.com/developer/products/atlas/rag-chatbot-vector-search/",
            metadata={"page_rank": 3, "tags": "vector search"},
        ),
        EmbeddedContent(
            text="""Five tips for faster aggregation pipelines: put $match and $sort stages as
early as possible so they can use an index, project away unused fields, and prefer
$lookup with a pipeline when you only need a few joined fields.""",
            source_name=DEVCENTER,
            url="https://www.mongodb.com/developer/products/mongodb/aggregation-performance-tips/",
            metadata={"page_rank": 2, "tags": "aggregation"},
        ),
        EmbeddedContent(
            text="""How to index for the ESR rule: order compound index keys as Equality fields
first, then Sort fields, then Range fields. Following this rule lets a single index
serve both the filter and the sort of a query.""",
            source_name=DEVCENTER,
            url="https://www.mongodb.com/developer/products/mongodb/esr-index-rule/",
            metadata={"page_rank": 3, "tags": "indexes"},
        ),
        EmbeddedContent(
            text="""Lesson: modeling data for your application. Embed related data that is read
together in a single document, and reference data that is large, unbounded or shared
between many documents.""",
            source_name=UNIVERSITY,
            url="https://learn.mongodb.com/courses/data-modeling/lesson-1",
            metadata={"page_rank": 2, "tags": "data modeling"},
        ),
        EmbeddedContent(
            text="""Lesson: using transactions in your application. Keep transactions short,
retry on TransientTransactionError and avoid creating collections inside a transaction.""",
            source_name=UNIVERSITY,
            url="https://learn.mongodb.com/courses/transactions/lesson-2",
            metadata={"page_rank": 2, "tags": "transactions"},
        ),
    ]


async def seed_content_store(
    store,
    embedder: Embedder,
    contents: Sequence[EmbeddedContent] | None = None,
) -> int:
    """
    Embed and insert seed content into a store.

    Content without an embedding is embedded in a single batch call. The
    given items are left untouched; embedded copies are inserted instead.

    Args:
        store: Any store with an async insert_content() method
        embedder: Embedder used for content that has no vector yet
        contents: Content to insert (defaults to the documentation corpus)

    Returns:
        Number of inserted items
    """
    contents = list(contents) if contents is not None else get_documentation_content()

    missing = [i for i, c in enumerate(contents) if c.embedding is None]
    if missing:
        vectors = await embedder.embed_batch([contents[i].text for i in missing])
        for i, vector in zip(missing, vectors):
            contents[i] = replace(contents[i], embedding=vector)

    await store.insert_content(contents)
    logger.info(f"Seeded {len(contents)} content items")
    return len(contents)
