"""CLI entry point: python -m contact_groups.cli {generate,issue-token}"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

import httpx
import structlog

from contact_groups.api.auth import issue_token
from contact_groups.config.settings import get_settings
from contact_groups.errors import ContactGroupsError, ValidationError
from contact_groups.generation.orchestrator import (
    GenerationOptions,
    GenerationOrchestrator,
    GenerationResult,
)
from contact_groups.grouping.config import load_grouping_config
from contact_groups.grouping.domain import Contact
from contact_groups.logging_config import configure_logging
from contact_groups.venues.client import PlacesApiClient


def load_contacts_file(path: Path) -> list[Contact]:
    """Read contacts from a JSON list or a ``{"contacts": [...]}`` object.

    Raises:
        ValidationError: If the file is unreadable, not JSON, or holds a
            contact that cannot be parsed.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("contacts", [])
        return [Contact.from_dict(item) for item in data]
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
        raise ValidationError(
            f"Invalid contacts file {path}: {exc!r}", field="contacts_json"
        ) from exc


async def run_generate(
    contacts: list[Contact], options: GenerationOptions
) -> GenerationResult:
    """Run the orchestrator, with live venue lookups when enabled and configured."""
    log = structlog.get_logger()
    settings = get_settings()
    config = load_grouping_config(settings.grouping_config_path)

    if not (options.enhanced_event_detection and settings.places_api_key):
        if options.enhanced_event_detection:
            log.warning("venue_lookup_disabled", reason="CONTACT_GROUPS_PLACES_API_KEY not set")
        return await GenerationOrchestrator(config).generate(contacts, options)

    async with httpx.AsyncClient() as http_client:
        client = PlacesApiClient(
            http_client,
            api_key=settings.places_api_key,
            base_url=settings.places_base_url,
            timeout=settings.places_timeout_seconds,
        )
        orchestrator = GenerationOrchestrator(config, lookup_client=client)
        return await orchestrator.generate(contacts, options)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="contact_groups.cli",
        description="Contact group generation CLI",
    )
    subparsers = parser.add_subparsers(dest="command")

    gen = subparsers.add_parser("generate", help="Generate groups from a contacts JSON file")
    gen.add_argument("contacts_json", type=Path, help="Path to the contacts JSON file")
    gen.add_argument("--output", type=Path, default=None, help="Write result JSON here (default: stdout)")
    gen.add_argument("--no-company", action="store_true", help="Disable company grouping")
    gen.add_argument("--no-events", action="store_true", help="Disable event detection")
    gen.add_argument("--no-time", action="store_true", help="Disable temporal grouping")
    gen.add_argument("--location", action="store_true", help="Enable proximity grouping")
    gen.add_argument("--enhanced", action="store_true", help="Enable venue lookups")
    gen.add_argument("--min-group-size", type=int, default=2)
    gen.add_argument("--max-groups", type=int, default=50)

    token = subparsers.add_parser("issue-token", help="Print a bearer token for a user id")
    token.add_argument("user_id")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    settings = get_settings()
    configure_logging(
        json_output=settings.log_json, log_level=settings.log_level, stream=sys.stderr
    )

    if args.command == "issue-token":
        try:
            print(issue_token(args.user_id))
        except ContactGroupsError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        return 0

    options = GenerationOptions(
        group_by_company=not args.no_company,
        group_by_location=args.location,
        group_by_events=not args.no_events,
        group_by_time=not args.no_time,
        min_group_size=args.min_group_size,
        max_groups=args.max_groups,
        enhanced_event_detection=args.enhanced,
    )
    try:
        contacts = load_contacts_file(args.contacts_json)
        result = asyncio.run(run_generate(contacts, options))
    except ContactGroupsError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    output = json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str)
    if args.output:
        args.output.write_text(output + "\n", encoding="utf-8")
        structlog.get_logger().info("result_written", path=str(args.output), groups=len(result.groups))
    else:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
