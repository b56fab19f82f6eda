# CuraLink - Command Line
# =======================
"""
CuraLink command line.

Usage:
    curalink normalize "I was diagnosed with a brain tumor"
    curalink match --kind trials "brain tumor" "diabetic"
    curalink import --kind publications "Lung Cancer"
    curalink seed cancer diabetes
    curalink sync-expert --account 42 --name "Dr. Ada Lovelace" --specialty Oncology
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .catalog.database import CatalogError
from .catalog.models import ContentKind
from .config import CuralinkConfig
from .service import RecommendationService

logger = logging.getLogger(__name__)

KIND_CHOICES = [k.value for k in ContentKind]


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _build_service(args) -> RecommendationService:
    config = CuralinkConfig.from_env(args.env_file)
    if args.db_path:
        config.db_path = args.db_path
    return RecommendationService(config)


def cmd_normalize(args) -> int:
    service = _build_service(args)
    results = {}
    for text in args.text:
        if args.fallback:
            results[text] = service.normalizer.extract_or_fallback(text)
        else:
            results[text] = service.normalizer.extract_conditions(text)
    _print_json(results)
    return 0


def cmd_match(args) -> int:
    service = _build_service(args)
    tags = service.patient_tags(args.conditions)
    items = service.engine.personalized_match(tags, ContentKind(args.kind))
    _print_json({
        "tags": tags,
        "kind": args.kind,
        "results": [item.model_dump(mode="json") for item in items],
    })
    return 0


def cmd_import(args) -> int:
    service = _build_service(args)
    kind = ContentKind(args.kind)
    if kind == ContentKind.EXPERTS:
        logger.error("Experts are not imported from external sources; use sync-expert")
        return 2

    report = service.import_content(args.terms, kind)
    _print_json({
        "kind": kind.value,
        "terms": report.terms,
        "fetched": report.fetched,
        "persisted": report.persisted,
        "duplicates": report.duplicates,
        "failed_sources": report.failed_sources,
    })
    return 0


def cmd_seed(args) -> int:
    service = _build_service(args)
    added = service.ensure_seeded(args.conditions)
    _print_json({kind.value: count for kind, count in added.items()})
    return 0


def cmd_sync_expert(args) -> int:
    service = _build_service(args)
    expert = service.sync_platform_expert(
        args.account,
        args.name,
        specialties=args.specialty,
        research_interests=args.interest,
        email=args.email,
        location=args.location,
    )
    _print_json(expert.model_dump(mode="json"))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="curalink",
        description="CuraLink matching core",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--db-path", help="Path to the SQLite catalog")
    parser.add_argument("--env-file", help="Path to a .env file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    normalize = subparsers.add_parser("normalize", help="Show canonical tags for free text")
    normalize.add_argument("text", nargs="+", help="Free-text condition descriptions")
    normalize.add_argument(
        "--fallback",
        action="store_true",
        help="Keep the original text when no tag is found",
    )
    normalize.set_defaults(func=cmd_normalize)

    match = subparsers.add_parser("match", help="Personalized matches for a patient")
    match.add_argument("--kind", choices=KIND_CHOICES, required=True)
    match.add_argument("conditions", nargs="+", help="Patient conditions as entered")
    match.set_defaults(func=cmd_match)

    import_cmd = subparsers.add_parser("import", help="Import external content for terms")
    import_cmd.add_argument("--kind", choices=KIND_CHOICES, required=True)
    import_cmd.add_argument("terms", nargs="+", help="Search terms")
    import_cmd.set_defaults(func=cmd_import)

    seed = subparsers.add_parser("seed", help="Seed empty trial and publication catalogs")
    seed.add_argument("conditions", nargs="*", help="Conditions to seed for")
    seed.set_defaults(func=cmd_seed)

    sync = subparsers.add_parser("sync-expert", help="Create or update a platform expert")
    sync.add_argument("--account", required=True, help="Platform account reference")
    sync.add_argument("--name", required=True)
    sync.add_argument("--specialty", action="append", default=[])
    sync.add_argument("--interest", action="append", default=[])
    sync.add_argument("--email")
    sync.add_argument("--location")
    sync.set_defaults(func=cmd_sync_expert)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        return args.func(args)
    except CatalogError as e:
        logger.error(f"Catalog error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
