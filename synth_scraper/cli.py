"""
Command Line Interface for Synth Scraper
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .app import run
from .config import load_config, parse_targets
from .core.artifacts import ArtifactPaths
from .core.exceptions import ConfigurationFailure
from .core.migrations import migrate
from .core.models import Target
from .core.store import DocumentStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='synth-scraper',
        description='Synth Scraper - synthesizes an extraction program per page and caches it by URL'
    )
    parser.add_argument(
        '--workdir',
        type=str,
        help='Root for generated/ and store/ (default: $SYNTH_SCRAPER_WORKDIR or .)'
    )
    parser.add_argument(
        '--env-file',
        type=str,
        help='Path to a .env file (default: ./.env)'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    run_parser = subparsers.add_parser('run', help='Run the pipeline over all targets')
    run_parser.add_argument(
        '--target',
        nargs=2,
        action='append',
        metavar=('URL', 'CATEGORY'),
        help='Target URL and content category (repeatable)'
    )
    run_parser.add_argument(
        '--targets',
        type=str,
        help='JSON file with a list of {"url": ..., "category": ...} objects'
    )
    run_parser.add_argument(
        '--model',
        type=str,
        help='AI model to use (default: auto-detected from the API key)'
    )
    run_parser.add_argument(
        '--capture-mode',
        choices=['browser', 'static'],
        help='browser (Playwright, JS support) or static (CloudScraper)'
    )
    run_parser.add_argument(
        '--force-regenerate',
        action='store_true',
        help='Ignore cached programs and synthesize new ones'
    )

    subparsers.add_parser('clear-files', help='Delete generated markup, programs and extracted data')
    subparsers.add_parser('clear-db', help='Empty the programs and results collections')

    migrate_parser = subparsers.add_parser('migrate', help='Apply store migrations')
    migrate_parser.add_argument('--down', action='store_true', help='Revert applied migrations')

    subparsers.add_parser('stats', help='Show store statistics')

    return parser


def _collect_targets(args) -> Optional[List[Target]]:
    targets = []
    if args.targets:
        targets.extend(parse_targets(Path(args.targets).read_text(encoding='utf-8')))
    for url, category in args.target or []:
        targets.append(Target(url=url, category=category))
    return targets or None


def _progress(completed: int, total: int) -> None:
    logger.debug(f" Progress: {completed}/{total} steps")


def cmd_run(args) -> int:
    config = load_config(
        args.env_file,
        workdir=Path(args.workdir) if args.workdir else None,
        targets=_collect_targets(args),
        model_name=args.model,
        capture_mode=args.capture_mode,
        force_regenerate=args.force_regenerate or None
    )
    logger.info('Starting the scraping process...')
    report = asyncio.run(run(config, on_progress=_progress))

    print(f"\n✅ Scraping complete!")
    print(f"   Targets: {len(report.outcomes)}")
    for status, count in report.counts.items():
        print(f"   {status.value}: {count}")
    return 0


def cmd_clear_files(args) -> int:
    config = load_config(args.env_file, workdir=Path(args.workdir) if args.workdir else None)
    removed = ArtifactPaths(str(config.workdir)).clear_generated()
    print(f"🗑  Removed {removed} generated files")
    return 0


def cmd_clear_db(args) -> int:
    config = load_config(args.env_file, workdir=Path(args.workdir) if args.workdir else None)
    with DocumentStore(str(config.store_dir)) as store:
        removed = store.clear()
    print(f"🗑  Cleared {removed['programs']} programs and {removed['results']} results")
    return 0


def cmd_migrate(args) -> int:
    config = load_config(args.env_file, workdir=Path(args.workdir) if args.workdir else None)
    with DocumentStore(str(config.store_dir)) as store:
        ran = migrate(store, 'down' if args.down else 'up')
        version = store.schema_version
    print(f"Migrations run: {', '.join(ran) if ran else 'none'} (schema version {version})")
    return 0


def cmd_stats(args) -> int:
    config = load_config(args.env_file, workdir=Path(args.workdir) if args.workdir else None)
    with DocumentStore(str(config.store_dir)) as store:
        print(json.dumps(store.stats(), indent=2))
    return 0


COMMANDS = {
    'run': cmd_run,
    'clear-files': cmd_clear_files,
    'clear-db': cmd_clear_db,
    'migrate': cmd_migrate,
    'stats': cmd_stats,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        return COMMANDS[args.command](args)
    except ConfigurationFailure as e:
        logger.error(f"Error: {e.message}")
        return 1
    except KeyboardInterrupt:
        print("\n⚠️ Interrupted by user")
        return 1


if __name__ == '__main__':
    sys.exit(main())
