"""Command-line entry point for the FareHarbor events sync.

Dry run by default:

    fareharbor-sync
    fareharbor-sync --write
    fareharbor-sync --write --merge-existing
    fareharbor-sync --browser --write --events-file path/to/events.json
"""
import argparse
import logging
import os
import sys
from dataclasses import replace
from typing import List, Optional

from lambda_function import setup_logging
from processor.config import SyncConfig
from processor.exceptions import EmptyResultError
from processor.sync_runner import EventSyncRunner
from storage.event_store import open_event_store

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_EMPTY_RESULT = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Sync events.json from FareHarbor's public embed pages."
    )
    parser.add_argument("--write", action="store_true", help="Write the events file (default: dry run)")
    parser.add_argument("--merge-existing", action="store_true",
                        help="Keep non-FareHarbor events already in the file")
    parser.add_argument("--allow-empty", action="store_true",
                        help="Allow writing an empty event list")
    parser.add_argument("--browser", action="store_true",
                        help="Fall back to a headless browser for items static HTML can't read")
    parser.add_argument("--events-file", default=None, help="Events document path or s3://bucket/key")
    parser.add_argument("--log-level", default=os.environ.get("LOG_LEVEL", "INFO"))
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace, environ=None) -> SyncConfig:
    """Environment configuration with command-line flags layered on top."""
    config = SyncConfig.from_env(environ)
    return replace(
        config,
        write=config.write or args.write,
        merge_existing=config.merge_existing or args.merge_existing,
        allow_empty=config.allow_empty or args.allow_empty,
        use_browser=config.use_browser or args.browser,
        events_file=args.events_file or config.events_file
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    logger = logging.getLogger("sync_events")

    config = build_config(args)
    try:
        runner = EventSyncRunner(config, open_event_store(config.events_file))
        result = runner.run()
    except EmptyResultError as e:
        logger.error(f"{e} Target: {config.events_file}")
        return EXIT_EMPTY_RESULT
    except Exception as e:
        logger.error(f"Sync failed: {e}", exc_info=True)
        return EXIT_FAILED

    if result.written:
        logger.info(f"Wrote {result.events_total} event(s) to {config.events_file}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
