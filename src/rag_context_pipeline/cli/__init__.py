"""
CLI module - unified command-line interface.

Provides entry points for:
- Retrieving the prompt context for a query
- Seeding the content store
- Running the retrieval quality eval
"""

from rag_context_pipeline.cli.commands import (
    main,
    run_retrieve_cli,
    run_seed_cli,
    run_eval_cli,
)

__all__ = [
    "main",
    "run_retrieve_cli",
    "run_seed_cli",
    "run_eval_cli",
]
