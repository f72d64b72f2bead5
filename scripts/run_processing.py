#!/usr/bin/env python3
"""
Content Generation Script

Run the learning-content generation pipeline against the content table.

Each processed item gets a bulleted quick summary, a multi-paragraph full
summary, and a set of self-assessment questions, all sized to the
duration of the source media.

Setup:
    1. Ensure PostgreSQL is running (docker-compose up -d postgres)
    2. Copy .env.example to .env in the project root and fill in GEMINI_API_KEY
    3. Run any command below

Usage:
    # Create the content table
    python run_processing.py init-db

    # Register a transcript and process it immediately
    python run_processing.py add "Episode title" transcript.txt --duration 1.5 --process

    # Process specific content by id
    python run_processing.py process <content_id>

    # Reset failed content and process it again
    python run_processing.py retry <content_id> [<content_id> ...]

    # Process all pending content
    python run_processing.py process-pending

    # Show processing statistics
    python run_processing.py stats

    # Reset content stuck in "processing" after a crash
    python run_processing.py cleanup --older-than 60

Environment Variables (set in .env or environment):
    Required:
    - POSTGRES_HOST, POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB
    - GEMINI_API_KEY (or the key for whichever provider PROCESSING_MODEL_CONTENT_GENERATION uses)

    Optional:
    - PROCESSING_MAX_CONCURRENT_JOBS, PROCESSING_RATE_LIMIT_REQUESTS_PER_MINUTE, ...
    - DEBUG: Enable verbose logging
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

# Add backend to path for imports (must be before app.* imports)
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from dotenv import load_dotenv

# Load environment variables from project root .env
project_root = Path(__file__).parent.parent
if (project_root / ".env").exists():
    load_dotenv(project_root / ".env")
else:
    load_dotenv(project_root / "backend" / ".env")

# Override DEBUG to suppress SQLAlchemy echo (engine uses echo=settings.DEBUG)
os.environ["DEBUG"] = "false"

# App imports (after sys.path setup and env loading)
from app.db.base import init_db
from app.enums.content import ContentSource
from app.enums.processing import JobStatus
from app.models.processing import ProcessingJob
from app.services.factory import build_processing_queue
from app.services.orchestrator import ProcessingOrchestrator
from app.services.processing.errors import GenerationError, QueueError
from app.services.storage import SQLContentStore


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    # Reduce noise from httpx and other libs (unless --debug)
    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        logging.getLogger("LiteLLM").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)


def build_orchestrator() -> ProcessingOrchestrator:
    store = SQLContentStore()
    return ProcessingOrchestrator(store, build_processing_queue(store))


def format_job(job: ProcessingJob) -> str:
    emoji = {
        JobStatus.COMPLETED: "✅",
        JobStatus.FAILED: "❌",
        JobStatus.PENDING: "⏳",
        JobStatus.PROCESSING: "🔄",
        JobStatus.RETRYING: "🔁",
    }.get(job.status, "❓")
    line = f"{emoji} {job.content_id} [{job.status.value}] retries={job.retry_count}"
    if job.error:
        line += f"\n   Error ({job.error_code}): {job.error}"
    return line


async def report_jobs(orchestrator: ProcessingOrchestrator, output_format: str) -> int:
    """Wait for the queue to drain, print every job, return the failure count."""
    await orchestrator.queue.join()
    jobs = orchestrator.queue.list_jobs()

    if output_format == "json":
        print(json.dumps([job.model_dump(mode="json") for job in jobs], indent=2))
    else:
        for job in jobs:
            print(format_job(job))

    queue_stats = orchestrator.queue.stats()
    if queue_stats.halted:
        print(f"\n🛑 Queue halted: {queue_stats.halt_reason}")
        print(f"   {queue_stats.pending} job(s) left pending")

    return sum(1 for job in jobs if job.status == JobStatus.FAILED)


# =============================================================================
# Commands
# =============================================================================


async def add_content(args: argparse.Namespace) -> int:
    transcript_path = Path(args.transcript_file)
    if not transcript_path.exists():
        print(f"❌ Transcript not found: {transcript_path}")
        return 1

    orchestrator = build_orchestrator()
    transcript = transcript_path.read_text()
    source = ContentSource(args.source)

    if not args.process:
        content_id = await orchestrator.store.add_content(
            title=args.title,
            transcript=transcript,
            duration_hours=args.duration,
            source=source,
            source_url=args.url or "",
        )
        print(f"📥 Registered content: {content_id}")
        return 0

    try:
        content_id, _ = await orchestrator.add_and_process_content(
            title=args.title,
            transcript=transcript,
            duration_hours=args.duration,
            source=source,
            source_url=args.url or "",
        )
    except GenerationError as e:
        print(f"❌ {e.message}")
        return 1

    print(f"🚀 Processing content: {content_id}")
    failed = await report_jobs(orchestrator, args.format)
    return 1 if failed else 0


async def process_content(args: argparse.Namespace) -> int:
    orchestrator = build_orchestrator()

    try:
        await orchestrator.process_content(args.content_id)
    except (GenerationError, QueueError) as e:
        print(f"❌ {e}")
        return 1

    print(f"🚀 Processing content: {args.content_id}")
    failed = await report_jobs(orchestrator, args.format)
    return 1 if failed else 0


async def retry_content(args: argparse.Namespace) -> int:
    orchestrator = build_orchestrator()

    result = await orchestrator.batch_process_content(args.content_ids)
    print(f"🔁 Queued {len(result.queued)} item(s)")
    for content_id in result.failed:
        print(f"   ❌ Could not queue {content_id}")

    failed = await report_jobs(orchestrator, args.format)
    return 1 if failed or result.failed else 0


async def process_pending(args: argparse.Namespace) -> int:
    orchestrator = build_orchestrator()

    result = await orchestrator.process_all_pending()
    if not result.started and not result.failed:
        print("📭 No pending content to process")
        return 0

    print(f"\n📋 Started {result.started} job(s), {result.failed} could not start")
    print("=" * 60)
    failed = await report_jobs(orchestrator, args.format)

    print(f"\n{'=' * 60}")
    print("📊 BATCH PROCESSING SUMMARY")
    print(f"{'=' * 60}")
    print(f"Started: {result.started}")
    print(f"Failed: {failed + result.failed}")
    return 1 if failed or result.failed else 0


async def show_stats(args: argparse.Namespace) -> int:
    orchestrator = build_orchestrator()
    stats = await orchestrator.get_processing_stats()

    if args.format == "json":
        print(json.dumps(stats.model_dump(), indent=2))
        return 0

    print("\n" + "=" * 60)
    print("📚 CONTENT PROCESSING STATISTICS")
    print("=" * 60)
    print(f"Total content:      {stats.total_content}")
    print(f"  ⏳ Pending:        {stats.pending}")
    print(f"  🔄 Processing:     {stats.processing}")
    print(f"  ✅ Completed:      {stats.completed}")
    print(f"  ❌ Failed:         {stats.failed}")
    print(f"Questions generated: {stats.total_questions_generated}")
    print(f"Avg processing time: {stats.avg_processing_time_hours:.2f}h")
    return 0


async def cleanup(args: argparse.Namespace) -> int:
    orchestrator = build_orchestrator()
    result = await orchestrator.cleanup_stuck_processing(args.older_than)

    print(f"🧹 Reset {result.reset_count} stuck item(s) to pending")
    for error in result.errors:
        print(f"   ❌ {error}")
    return 1 if result.errors else 0


async def create_tables(args: argparse.Namespace) -> int:
    await init_db()
    print("✅ Content table ready")
    return 0


# =============================================================================
# CLI Setup
# =============================================================================


def add_format_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        "-f",
        choices=["summary", "json"],
        default="summary",
        help="Output format (default: summary)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        description="Generate summaries and self-assessment questions from transcripts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    init_parser = subparsers.add_parser("init-db", help="Create the content table")
    init_parser.set_defaults(handler=create_tables)

    add_parser = subparsers.add_parser("add", help="Register a transcript")
    add_parser.add_argument("title", help="Content title")
    add_parser.add_argument("transcript_file", help="Path to a plain-text transcript")
    add_parser.add_argument(
        "--duration", type=float, required=True, help="Duration of the source media in hours"
    )
    add_parser.add_argument(
        "--source",
        choices=[source.value for source in ContentSource],
        default=ContentSource.OTHER.value,
        help="Kind of source (default: other)",
    )
    add_parser.add_argument("--url", help="Source URL")
    add_parser.add_argument(
        "--process", action="store_true", help="Process immediately after registering"
    )
    add_format_arg(add_parser)
    add_parser.set_defaults(handler=add_content)

    process_parser = subparsers.add_parser("process", help="Process specific content by id")
    process_parser.add_argument("content_id", help="Content id to process")
    add_format_arg(process_parser)
    process_parser.set_defaults(handler=process_content)

    retry_parser = subparsers.add_parser("retry", help="Reset and reprocess content")
    retry_parser.add_argument("content_ids", nargs="+", help="Content ids to retry")
    add_format_arg(retry_parser)
    retry_parser.set_defaults(handler=retry_content)

    pending_parser = subparsers.add_parser(
        "process-pending", help="Process all pending content"
    )
    add_format_arg(pending_parser)
    pending_parser.set_defaults(handler=process_pending)

    stats_parser = subparsers.add_parser("stats", help="Show processing statistics")
    add_format_arg(stats_parser)
    stats_parser.set_defaults(handler=show_stats)

    cleanup_parser = subparsers.add_parser(
        "cleanup", help="Reset content stuck in processing"
    )
    cleanup_parser.add_argument(
        "--older-than",
        type=int,
        default=None,
        metavar="MINUTES",
        help="Age threshold in minutes (default: PROCESSING_STUCK_PROCESSING_MINUTES)",
    )
    cleanup_parser.set_defaults(handler=cleanup)

    return parser


async def main() -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.debug)
    sys.exit(await args.handler(args))


if __name__ == "__main__":
    asyncio.run(main())
