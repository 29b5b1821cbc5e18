"""Command-line entry point.

Usage:
    ragu ask "who studied physics?"                 # Retrieve and answer
    ragu ask "who studied physics?" --context "physics graduate"
    ragu load data/users.csv                        # Embed rows and store them
    ragu export_to_csv data/users.csv out.csv       # Embed rows into a CSV column
    ragu init-db                                    # Create extension and table
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import structlog

from ragu import db
from ragu.config import Settings
from ragu.errors import RaguError
from ragu.llm_client import OllamaClient
from ragu.rag.embedder import EmbeddingClient
from ragu.rag.ingest import IngestPipeline
from ragu.rag.retriever import Answer, Query, Retriever
from ragu.rag.store_pgvector import PgVectorStore
from ragu.rag.synthesizer import AnswerSynthesizer

logger = structlog.get_logger()

RULE = "-" * 65


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog to write to stderr, keeping stdout for results."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ragu",
        description="Semantic search over tabular data stored in PostgreSQL.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    commands = parser.add_subparsers(dest="command", required=True)

    ask = commands.add_parser("ask", help="Query the stored rows")
    ask.add_argument("query", help="Question to search for")
    ask.add_argument(
        "--context",
        "--ctx",
        default=None,
        help="Text used for retrieval instead of the question",
    )
    ask.add_argument("--threshold", type=float, default=None, help="Minimum similarity score")
    ask.add_argument("--top-k", type=int, default=None, help="Maximum number of matches")
    ask.add_argument(
        "--no-answer",
        action="store_true",
        help="Only list matches, skip answer generation",
    )

    load = commands.add_parser("load", help="Load a .csv file into the database")
    load.add_argument("file", type=Path, help="Source CSV file")

    export = commands.add_parser(
        "export_to_csv",
        help="Embed a .csv file and write the embeddings to another .csv",
    )
    export.add_argument("source", type=Path, help="Source CSV file")
    export.add_argument("dest", type=Path, help="Destination CSV file")

    commands.add_parser("init-db", help="Create the pgvector extension and table")

    return parser


def print_answer(answer: Answer) -> None:
    print(RULE)
    print(f"QUERY: {answer.query.question}")
    if answer.query.context:
        print(f"CONTEXT: {answer.query.context}")
    print(RULE)

    if not answer.matches:
        print("No rows crossed the relevance threshold.")
    for match in answer.matches:
        print(f"[{match.record_id}] score={match.score:.4f}\n{match.text}\n{RULE}")

    if answer.text is not None:
        print(f"\nANSWER ({answer.duration.total_seconds():.1f}s):\n{answer.text}")


async def run_ask(args: argparse.Namespace, settings: Settings) -> None:
    embedder = EmbeddingClient(settings)
    synthesizer = None if args.no_answer else AnswerSynthesizer(OllamaClient(settings))

    async with db.create_pool(settings) as pool:
        retriever = Retriever(
            embedder,
            PgVectorStore(pool, settings),
            synthesizer=synthesizer,
            threshold=settings.relevance_threshold,
            top_k=settings.retrieval_top_k,
        )
        answer = await retriever.ask(
            Query(question=args.query, context=args.context),
            threshold=args.threshold,
            top_k=args.top_k,
        )

    print_answer(answer)


async def run_load(args: argparse.Namespace, settings: Settings) -> None:
    async with db.create_pool(settings) as pool:
        pipeline = IngestPipeline(EmbeddingClient(settings), PgVectorStore(pool, settings))
        stats = await pipeline.load_file(args.file)

    print(f"Loaded {stats['rows_stored']} rows from {args.file}")


async def run_export(args: argparse.Namespace, settings: Settings) -> None:
    pipeline = IngestPipeline(EmbeddingClient(settings))
    stats = await pipeline.export_to_csv(args.source, args.dest)
    print(f"Wrote {stats['embeddings_generated']} embedded rows to {args.dest}")


async def run_init_db(args: argparse.Namespace, settings: Settings) -> None:
    async with db.create_pool(settings) as pool:
        await db.init_database(pool, settings)
    print(f"Table {settings.vector_table} is ready")


COMMANDS = {
    "ask": run_ask,
    "load": run_load,
    "export_to_csv": run_export,
    "init-db": run_init_db,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit status."""
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
    except RaguError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    configure_logging(settings.log_level, settings.log_json)

    try:
        asyncio.run(COMMANDS[args.command](args, settings))
    except KeyboardInterrupt:
        print("\nCancelled by user.", file=sys.stderr)
        return 1
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.error("command_failed", command=args.command, error=str(e), error_type=type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
