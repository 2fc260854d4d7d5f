"""
Command-line interface for the mock exam generator.

Usage:
    python -m app generate [--subjects FILE] [--batch-size N]
    python -m app providers
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from app.config import get_generation_config, get_settings
from app.db.question_papers import SupabaseQuestionPaperStore
from app.db.supabase_client import get_supabase_client
from app.models.generation import GenerateRequest
from app.services.paper_orchestrator import PaperOrchestrator
from app.services.subject_catalog import default_generate_request


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="mock-exam-generator",
        description="Mock Exam Generator CLI - generate and save question papers"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate a question paper and print progress as NDJSON"
    )
    generate_parser.add_argument(
        "--subjects",
        "-s",
        type=str,
        default=None,
        help="JSON file with technicalSubjects/nonTechnicalSubjects (default: built-in RRB JE layout)"
    )
    generate_parser.add_argument(
        "--batch-size",
        "-b",
        type=int,
        default=None,
        help="Subjects generated concurrently, 0 = all at once (default: from env or 3)"
    )

    subparsers.add_parser(
        "providers",
        help="Show provider credentials and models"
    )

    return parser


def load_generate_request(path: Optional[str]) -> GenerateRequest:
    """Read a GenerateRequest from a JSON file, or return the default layout."""
    if path is None:
        return default_generate_request()
    with open(Path(path), "r", encoding="utf-8") as f:
        return GenerateRequest.model_validate(json.load(f))


async def generate_command(args: argparse.Namespace) -> int:
    """
    Execute the generate command.

    Args:
        args: Parsed command-line arguments

    Returns:
        int: Exit code (0 when the paper was saved, 1 otherwise)
    """
    try:
        get_settings()
        config = get_generation_config()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        print("\nMake sure you have a .env file with:", file=sys.stderr)
        print("  SUPABASE_URL=https://your-project.supabase.co", file=sys.stderr)
        print("  SUPABASE_KEY=your_anon_key", file=sys.stderr)
        print("  GEMINI_API_KEY / PERPLEXITY_API_KEY / GROQ_API_KEY", file=sys.stderr)
        return 1

    if args.batch_size is not None:
        if args.batch_size < 0 or args.batch_size > 20:
            print("Error: --batch-size must be between 0 and 20", file=sys.stderr)
            return 1
        config = config.model_copy(update={"batch_size": args.batch_size})

    try:
        request = load_generate_request(args.subjects)
    except FileNotFoundError:
        print(f"Error: Subjects file not found: {args.subjects}", file=sys.stderr)
        return 1
    except (json.JSONDecodeError, ValidationError) as e:
        print(f"Error: Invalid subjects file: {e}", file=sys.stderr)
        return 1

    orchestrator = PaperOrchestrator(config, SupabaseQuestionPaperStore(get_supabase_client()))

    exit_code = 1
    async for event in orchestrator.run(request.technical_subjects, request.non_technical_subjects):
        sys.stdout.write(event.to_ndjson())
        sys.stdout.flush()
        if event.status == "complete":
            exit_code = 0
    return exit_code


def providers_command(args: argparse.Namespace) -> int:
    """Print each provider, whether it has a key, and its model rotation."""
    try:
        config = get_generation_config()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    for name, spec in sorted(config.providers.items()):
        state = "configured" if spec.configured else "missing api key"
        print(f"{name:<12} {state:<16} models={', '.join(spec.models)}")
    print(f"technical -> {config.category_providers['technical']}, "
          f"non_technical -> {config.category_providers['non_technical']}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "generate":
        try:
            return asyncio.run(generate_command(args))
        except KeyboardInterrupt:
            print("\n\nInterrupted by user", file=sys.stderr)
            return 1
    elif args.command == "providers":
        return providers_command(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
