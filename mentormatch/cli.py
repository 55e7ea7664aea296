"""
Command-line interface for mentor indexing and matching.

    mentormatch index [--mentors PATH]
    mentormatch match PROFILE_JSON [--max-results N] [--min-score X]

Results go to stdout as JSON; structured logs go to stderr.
"""

import argparse
import json
import os
import sys
from pathlib import Path
from typing import List, Optional

# Must be set before logging is configured so logs stay off stdout
os.environ.setdefault("MENTORMATCH_CLI_MODE", "1")

from pydantic import ValidationError  # noqa: E402

from mentormatch.api.models import MatchesResponse  # noqa: E402
from mentormatch.query.builder import SearchPreferences  # noqa: E402
from mentormatch.services.container import build_services  # noqa: E402
from mentormatch.services.mentor_store import MentorReferenceStore  # noqa: E402
from mentormatch.shared.config import reload_config  # noqa: E402
from mentormatch.shared.errors import InvalidProfile  # noqa: E402
from mentormatch.shared.observability import get_logger, setup_logging  # noqa: E402

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_PROFILE = 2


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2), flush=True)


def _read_profile(source: str):
    if source == "-":
        return json.load(sys.stdin)
    with open(Path(source), "r") as f:
        return json.load(f)


def cmd_index(args) -> int:
    """
    Implement 'mentormatch index' command.

    Loads the mentor seed file and writes every mentor into the vector index.
    """
    config, settings = reload_config()
    setup_logging(settings.log_level or config.app.log_level)

    try:
        store = (
            MentorReferenceStore.from_yaml(args.mentors)
            if args.mentors
            else MentorReferenceStore.from_config(config)
        )
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: Failed to load mentors: {e}", file=sys.stderr)
        return EXIT_ERROR

    services = build_services(config, settings, mentor_store=store)
    try:
        report = services.indexer.index_mentors(store.all())
    except Exception as e:
        logger.error("Mentor indexing failed", error=str(e))
        print(f"Error: Mentor indexing failed: {e}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        services.close()

    _print_json(
        {
            "mentors": report.mentors,
            "vectors": report.vectors,
            "namespaces": report.vectors_by_namespace,
            "vector_backend": services.vector_index.backend_name,
            "duration_ms": report.duration_ms,
        }
    )
    return EXIT_OK


def cmd_match(args) -> int:
    """
    Implement 'mentormatch match' command.

    Exit code 2 means the profile was rejected before any matching ran.
    """
    config, settings = reload_config()
    setup_logging(settings.log_level or config.app.log_level)

    try:
        profile = _read_profile(args.profile)
    except OSError as e:
        print(f"Error: Cannot read profile: {e}", file=sys.stderr)
        return EXIT_ERROR
    except json.JSONDecodeError as e:
        print(f"Error: Profile is not valid JSON: {e}", file=sys.stderr)
        return EXIT_INVALID_PROFILE

    try:
        preferences = SearchPreferences(
            max_results=args.max_results, min_score=args.min_score
        )
    except ValidationError as e:
        print(f"Error: Invalid search preferences: {e}", file=sys.stderr)
        return EXIT_ERROR

    services = build_services(config, settings)
    try:
        response = services.match_service.match(profile, preferences)
    except InvalidProfile as e:
        print(
            json.dumps({"success": False, "error": str(e), "details": e.errors}),
            file=sys.stderr,
        )
        return EXIT_INVALID_PROFILE
    finally:
        services.close()

    _print_json(MatchesResponse.from_match_response(response).model_dump(mode="json"))
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mentormatch",
        description="Crypto mentor indexing and matching",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    index_parser = subparsers.add_parser("index", help="Index mentors into the vector index")
    index_parser.add_argument(
        "--mentors", help="Mentor seed YAML (defaults to the configured seed file)"
    )
    index_parser.set_defaults(func=cmd_index)

    match_parser = subparsers.add_parser("match", help="Match a newcomer profile")
    match_parser.add_argument(
        "profile", help="Path to a newcomer profile JSON file, or - for stdin"
    )
    match_parser.add_argument(
        "--max-results", type=int, default=None, help="Maximum matches to return"
    )
    match_parser.add_argument(
        "--min-score", type=float, default=None, help="Minimum overall score (0-1)"
    )
    match_parser.set_defaults(func=cmd_match)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return EXIT_ERROR
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
