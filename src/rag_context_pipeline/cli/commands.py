"""
CLI commands - entry points for retrieval, seeding and evaluation.

Each command follows a consistent pattern:
1. Parse arguments
2. Load environment
3. Build the pipeline from configuration
4. Print results
5. Return exit code

Commands are thin wrappers: the work happens in the retrieval and evals
modules, which keeps the business logic testable without a terminal.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys

from dotenv import load_dotenv

from rag_context_pipeline.config import AppConfig, get_config
from rag_context_pipeline.core.errors import RetrievalPipelineError
from rag_context_pipeline.observability import init_phoenix, shutdown_phoenix


def _load_env() -> None:
    """Load environment variables from .env file."""
    load_dotenv()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _open_pipeline(config: AppConfig):
    """Build the pipeline, seeding the in-memory store so it works offline."""
    from rag_context_pipeline.embeddings import get_embedder
    from rag_context_pipeline.retrieval import build_pipeline, get_content_store, seed_content_store

    embedder = get_embedder(config=config)
    store = get_content_store(config=config)
    await store.connect()
    try:
        if not config.use_postgres:
            await seed_content_store(store, embedder)
        return build_pipeline(config=config, embedder=embedder, store=store)
    except BaseException:
        await store.close()
        raise


async def _retrieve(config: AppConfig, query: str) -> list:
    pipeline = await _open_pipeline(config)
    try:
        return await pipeline.retrieve(query)
    finally:
        await pipeline.store.close()


def run_retrieve_cli() -> int:
    """CLI entry point for a single retrieval."""
    _load_env()

    parser = argparse.ArgumentParser(description="Retrieve prompt context for a query")
    parser.add_argument("query", help="User query text")
    parser.add_argument("--k", type=int, help="Primary query k (default: RETRIEVAL_K)")
    parser.add_argument("--min-score", type=float, help="Primary minimum score (default: RETRIEVAL_MIN_SCORE)")
    parser.add_argument("--total-max-k", type=int, help="Cap on the final result count")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    _configure_logging(args.verbose)
    init_phoenix()

    config = get_config()
    overrides = {}
    if args.k is not None:
        overrides["retrieval_k"] = args.k
    if args.min_score is not None:
        overrides["retrieval_min_score"] = args.min_score
    if args.total_max_k is not None:
        overrides["retrieval_total_max_k"] = args.total_max_k
    config = dataclasses.replace(config, **overrides)

    try:
        results = asyncio.run(_retrieve(config, args.query))
    except (RetrievalPipelineError, ValueError) as e:
        print(f"Retrieval failed: {e}", file=sys.stderr)
        return 1
    finally:
        shutdown_phoenix()

    if args.json:
        print(json.dumps([r.to_dict() for r in results], indent=2))
        return 0

    print("=" * 60)
    print(f"CONTEXT FOR: {args.query}")
    print("=" * 60)
    if not results:
        print("  (no content above the minimum score)")
    for i, result in enumerate(results, start=1):
        preview = " ".join(result.text.split())[:100]
        print(f"  {i}. [{result.score:.3f}] {result.source_name} {result.content.url}")
        print(f"       {preview}")
    return 0


async def _seed(config: AppConfig) -> int:
    from rag_context_pipeline.embeddings import get_embedder
    from rag_context_pipeline.retrieval import get_content_store, seed_content_store

    store = get_content_store(config=config)
    await store.connect()
    try:
        await store.create_schema()
        return await seed_content_store(store, get_embedder(config=config))
    finally:
        await store.close()


def run_seed_cli() -> int:
    """CLI entry point for seeding the content store."""
    _load_env()

    parser = argparse.ArgumentParser(description="Seed the content store")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    _configure_logging(args.verbose)
    config = get_config()

    try:
        count = asyncio.run(_seed(config))
    except (RetrievalPipelineError, ValueError) as e:
        print(f"Seeding failed: {e}", file=sys.stderr)
        return 1

    target = config.content_table_name if config.use_postgres else "in-memory store"
    print(f"Seeded {count} content items into {target}")
    return 0


async def _evaluate(config: AppConfig, threshold: float, verbose: bool):
    from rag_context_pipeline.evals import evaluate_retrieval

    pipeline = await _open_pipeline(config)
    try:
        return await evaluate_retrieval(pipeline, threshold=threshold, verbose=verbose)
    finally:
        await pipeline.store.close()


def run_eval_cli() -> int:
    """CLI entry point for retrieval quality evaluation."""
    _load_env()

    parser = argparse.ArgumentParser(description="Run retrieval quality eval")
    parser.add_argument("--threshold", type=float, default=1.0, help="Minimum recall per case")
    parser.add_argument("--quiet", action="store_true", help="Minimal output")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    _configure_logging(args.verbose)
    init_phoenix()

    print("=" * 60)
    print("RETRIEVAL QUALITY EVAL")
    print("=" * 60)

    try:
        report = asyncio.run(_evaluate(get_config(), args.threshold, args.verbose))
    except RetrievalPipelineError as e:
        print(f"Eval failed: {e}", file=sys.stderr)
        return 1
    finally:
        shutdown_phoenix()

    if not args.quiet:
        for result in report.results:
            status = "PASS" if result.passed else "FAIL"
            if result.metrics is None:
                print(f"  [{status}] {result.query} (error: {result.error})")
                continue
            print(f"  [{status}] {result.query} (recall: {result.metrics.recall:.2f})")
            for url in result.metrics.missing:
                print(f"        Missing: {url}")

    print(f"\nAverage recall: {report.avg_recall:.2f}")
    print(f"Average precision: {report.avg_precision:.2f}")
    print(f"Threshold: {report.threshold}")
    print(f"Passed: {report.passed_cases}/{report.total_cases}")

    if report.all_passed:
        print("\n>>> RETRIEVAL EVAL GATE: PASSED <<<")
        return 0
    else:
        print("\n>>> RETRIEVAL EVAL GATE: FAILED <<<")
        return 1


def main() -> int:
    """
    Main CLI entry point with subcommands.

    Usage:
        rag-context retrieve "query"   # Print the ranked context
        rag-context seed               # Create schema and insert seed content
        rag-context eval               # Run retrieval quality eval
    """
    _load_env()

    parser = argparse.ArgumentParser(
        description="RAG context selection pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  retrieve    Print the ranked context for a query
  seed        Create the schema and insert the seed corpus
  eval        Run the retrieval quality eval gate

Examples:
  rag-context retrieve "createIndex" --json
  USE_MOCK_EMBEDDINGS=true rag-context retrieve "vector search" --min-score 0.5
  rag-context eval --threshold 0.5
        """,
    )

    parser.add_argument(
        "command",
        choices=["retrieve", "seed", "eval"],
        help="Command to run",
    )

    # Parse just the command first
    args, remaining = parser.parse_known_args()

    commands = {
        "retrieve": run_retrieve_cli,
        "seed": run_seed_cli,
        "eval": run_eval_cli,
    }

    # Re-inject remaining args for the subcommand
    sys.argv = [sys.argv[0]] + remaining

    try:
        return commands[args.command]()
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
