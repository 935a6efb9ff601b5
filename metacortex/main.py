"""Command line entry point for Metacortex."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .container import get_container
from .domain.exceptions import MetacortexError
from .domain.identifiers import generate_session_id
from .domain.models import ExtractedFragments, PatternType, Scope
from .domain.services import PatternFilter

SCOPE_CHOICES = [s.value for s in Scope]
TYPE_CHOICES = [t.value for t in PatternType]


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="metacortex",
        description="Metacortex - Pattern lifecycle engine for recurring workflows",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    evolve = commands.add_parser("evolve", help="Run the evolution pipeline")
    evolve.add_argument(
        "--scope", choices=SCOPE_CHOICES, help="Single scope (default: all scopes)"
    )

    preview = commands.add_parser("preview", help="Show what eviction would remove")
    preview.add_argument("--scope", choices=SCOPE_CHOICES, required=True)

    export = commands.add_parser("export", help="Regenerate PATTERNS.md or dump JSON")
    export.add_argument("--format", choices=["markdown", "json"], default="markdown")
    export.add_argument("--scope", choices=SCOPE_CHOICES, help="JSON export only")

    commands.add_parser("stats", help="Show store statistics")
    commands.add_parser("sessions", help="List recorded sessions")

    query = commands.add_parser("query", help="Filter and search patterns")
    query.add_argument("--scope", choices=SCOPE_CHOICES)
    query.add_argument("--type", choices=TYPE_CHOICES)
    query.add_argument("--text", help="Case-insensitive substring")
    query.add_argument("--tag", action="append", default=[], help="Repeatable")
    query.add_argument("--min-confidence", type=float)
    query.add_argument("--limit", type=int, default=20)

    record = commands.add_parser(
        "record", help="Record extracted fragments (JSON) for a scope"
    )
    record.add_argument("--scope", choices=SCOPE_CHOICES, required=True)
    record.add_argument("--session", help="Session ID (default: generated)")
    record.add_argument(
        "--file",
        type=argparse.FileType("r", encoding="utf-8"),
        default=sys.stdin,
        help="Fragments JSON file (default: stdin)",
    )
    return parser


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def run_command(args: argparse.Namespace) -> int:
    """Execute a parsed command. Returns the process exit code."""
    service = get_container().pattern_service

    if args.command == "evolve":
        if args.scope:
            results = [service.run_evolution(Scope(args.scope))]
        else:
            results = service.run_evolution_all_scopes()
        _emit([r.model_dump(mode="json") for r in results])
    elif args.command == "preview":
        _emit(service.get_eviction_preview(Scope(args.scope)).model_dump(mode="json"))
    elif args.command == "export":
        if args.format == "json":
            scope = Scope(args.scope) if args.scope else None
            print(service.export_json(scope))
        else:
            _emit({"path": str(service.export_markdown())})
    elif args.command == "stats":
        _emit(service.stats().model_dump(mode="json"))
    elif args.command == "sessions":
        _emit([s.model_dump(mode="json") for s in service.list_sessions()])
    elif args.command == "query":
        criteria = PatternFilter(
            scope=args.scope,
            type=args.type,
            text=args.text,
            tags=args.tag,
            min_confidence=args.min_confidence,
            limit=args.limit,
        )
        _emit([p.to_export_dict() for p in service.query_patterns(criteria)])
    elif args.command == "record":
        fragments = ExtractedFragments.model_validate_json(args.file.read())
        session_id = args.session or generate_session_id()
        result = service.record_observation(Scope(args.scope), fragments, session_id)
        _emit(result.model_dump(mode="json"))
    return 0


def main(argv: list[str] | None = None) -> None:
    """Run the Metacortex CLI."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    container = get_container()
    logger.debug(f"Data directory: {container.config.data_dir}")

    try:
        sys.exit(run_command(args))
    except MetacortexError as e:
        logger.error(str(e))
        sys.exit(1)
    except PydanticValidationError as e:
        logger.error(f"Invalid input: {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
