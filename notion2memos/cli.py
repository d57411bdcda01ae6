from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from notion2memos.config import load_config, write_config_template
from notion2memos.migration_tool import NotionToMemosMigrationTool
from notion2memos.utils.errors import CancelledError, MigrationError
from notion2memos.utils.state import StateTracker

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

log = logging.getLogger("notion2memos.cli")


def configure_logging(debug: bool, log_file: Optional[Path]) -> None:
    level = logging.DEBUG if debug else logging.INFO
    handlers: List[logging.Handler] = []
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    else:
        handlers.append(logging.StreamHandler(sys.stderr))

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )

    if debug:
        for noisy in ("urllib3", "requests"):
            logging.getLogger(noisy).setLevel(logging.DEBUG)
    else:
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=None,
                        help="Config file (default is ~/.notion2memos/config.json)")
    common.add_argument("--debug", action="store_true",
                        help="Enable verbose debug logging.")
    common.add_argument("--log-file", type=Path, default=None,
                        help="Write logs to this file instead of stderr.")

    p = argparse.ArgumentParser(
        prog="notion2memos",
        description="Migrate notes from Notion to Memos. Supports filtering by title, "
                    "resume capability, and dry-run mode.",
    )
    sub = p.add_subparsers(dest="command", required=True)

    migrate = sub.add_parser("migrate", parents=[common],
                             help="Migrate pages from Notion to Memos")
    migrate.add_argument("--resume", action="store_true",
                         help="Resume migration from where it left off")
    migrate.add_argument("--filter-title", dest="filter_titles", action="append", default=[],
                         help="Migrate only pages with this exact title (repeatable)")
    migrate.add_argument("--dry-run", action="store_true",
                         help="Save memos to ./dry-run-output/ instead of creating them")

    sub.add_parser("reset", parents=[common],
                   help="Clear the migration state so every page is migrated again")

    init = sub.add_parser("init", parents=[common],
                          help="Create a configuration file template")
    init.add_argument("--force", action="store_true",
                      help="Overwrite an existing configuration file")
    return p


def _state_path(config_file: Optional[str]) -> str:
    # reset needs no credentials, only the state file location
    return load_config(config_file, validate=False)["migration"]["state_file"]


def cmd_migrate(args: argparse.Namespace) -> int:
    tool = NotionToMemosMigrationTool(config_file=args.config, dry_run=args.dry_run)

    # First Ctrl-C cancels at the next Notion request, a second one interrupts
    def on_interrupt(signum, frame):
        log.warning("Cancelling migration; press Ctrl-C again to abort immediately.")
        signal.signal(signal.SIGINT, previous)
        tool.cancel()

    previous = signal.signal(signal.SIGINT, on_interrupt)
    try:
        summary = tool.migrate(resume=args.resume, filter_titles=args.filter_titles or None)
    finally:
        signal.signal(signal.SIGINT, previous)
    log.info(
        "Pages found: %d, selected: %d, migrated: %d, skipped (empty): %d, memos created: %d",
        summary.found, summary.selected, summary.migrated, summary.skipped_empty, summary.memos_created,
    )
    if summary.tag_warnings:
        log.warning("%d tag lookups failed; affected pages were migrated with partial tags",
                    summary.tag_warnings)
    return EXIT_OK


def cmd_reset(args: argparse.Namespace) -> int:
    StateTracker(_state_path(args.config)).clear()
    print("Migration state has been reset")
    return EXIT_OK


def cmd_init(args: argparse.Namespace) -> int:
    path = write_config_template(args.config, force=args.force)
    print(f"Configuration file created at: {path}")
    print("\nPlease edit the file and add your tokens before running migrations.")
    return EXIT_OK


COMMANDS = {
    "migrate": cmd_migrate,
    "reset": cmd_reset,
    "init": cmd_init,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.debug, args.log_file)
    log.debug("Parsed args: %s", vars(args))

    try:
        return COMMANDS[args.command](args)
    except KeyboardInterrupt:
        log.warning("Interrupted by user.")
        return EXIT_INTERRUPTED
    except CancelledError:
        log.warning("Migration cancelled; rerun with --resume to continue.")
        return EXIT_INTERRUPTED
    except MigrationError as e:
        log.error("%s", e)
        return EXIT_FAILURE
    except Exception:
        log.exception("Unhandled error during execution")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
