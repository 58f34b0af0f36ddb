"""
Stalesweep Command Line Entry Point

File Purpose: Parse CLI flags, configure logging, and run the cleanup workflow
Primary Functions/Classes: build_parser, configure_logging, main
Inputs and Outputs (I/O): Command line arguments, settings file, exit code

Exit codes: 0 for completed, empty and threshold-stopped runs, 1 for fatal
errors, 130 when interrupted by the user.
"""

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .auth import AuthManager
from .cleanup import CleanupWorkflow, compute_cutoff
from .exceptions import StalesweepError, handle_error
from .models import CleanupPolicy, console
from .progress import ProgressTracker
from .settings import DEFAULT_SETTINGS_FILE, SettingsManager
from .ui import UIManager

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stalesweep",
        description="Delete directory devices that have been inactive for too long.",
    )
    parser.add_argument(
        "--days",
        "--inactivity-days",
        dest="days",
        type=int,
        help="Inactivity window in days (default from settings, 90)",
    )
    parser.add_argument(
        "--threshold",
        type=int,
        help="Abort when this many or more devices are found (default 20, negative disables)",
    )
    parser.add_argument(
        "--disable-threshold", action="store_true", help="Turn off the safety threshold"
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Report what would be deleted without deleting"
    )
    parser.add_argument(
        "--confirm", action="store_true", help="Ask before deleting each device"
    )
    parser.add_argument(
        "--list", action="store_true", help="Only list stale devices and exit"
    )
    parser.add_argument(
        "--limit", type=int, help="Show at most this many rows with --list"
    )
    parser.add_argument(
        "--include-never",
        action="store_true",
        help="Also treat devices with no recorded sign-in as stale",
    )
    parser.add_argument("--base-url", help="Directory API base URL")
    parser.add_argument("--token", help="Bearer token (or set STALESWEEP_ACCESS_TOKEN)")
    parser.add_argument(
        "--settings",
        type=Path,
        default=DEFAULT_SETTINGS_FILE,
        help=f"Settings file (default {DEFAULT_SETTINGS_FILE})",
    )
    parser.add_argument(
        "--show-settings", action="store_true", help="Print effective settings and exit"
    )
    parser.add_argument(
        "--save-settings",
        action="store_true",
        help="Store --days, --threshold, --base-url and --include-never as defaults and exit",
    )
    parser.add_argument("--quiet", action="store_true", help="Hide per-device progress lines")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file")
    return parser


def configure_logging(level: str, log_file: Optional[Path] = None) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )


def save_settings(settings_mgr: SettingsManager, args: argparse.Namespace) -> int:
    """Persist the defaults given on the command line."""
    try:
        if args.days is not None:
            settings_mgr.update_setting("inactivity_days", args.days)
        if args.threshold is not None:
            settings_mgr.update_setting("threshold", args.threshold)
        if args.include_never:
            settings_mgr.update_setting("include_never_signed_in", True)
        settings_mgr.save_user_settings()
    except StalesweepError as e:
        handle_error(console, e, "Saving settings", show_details=True)
        return EXIT_ERROR
    console.print(f"[green]Settings saved to {settings_mgr.settings_file}[/]")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # Settings loading logs its own warnings, so handlers must exist first
    configure_logging("DEBUG" if args.verbose else "INFO", args.log_file)
    try:
        settings_mgr = SettingsManager(args.settings)
        if args.base_url:
            settings_mgr.update_setting("base_url", args.base_url)
    except StalesweepError as e:
        handle_error(console, e, "Loading settings", show_details=True)
        return EXIT_ERROR
    settings = settings_mgr.settings

    if not args.verbose:
        logging.getLogger().setLevel(settings.log_level)

    if args.show_settings:
        settings_mgr.show_settings()
        return EXIT_OK

    if args.save_settings:
        return save_settings(settings_mgr, args)

    days = args.days if args.days is not None else settings.inactivity_days
    threshold = args.threshold if args.threshold is not None else settings.threshold

    ui = UIManager(quiet=args.quiet)
    try:
        policy = CleanupPolicy.from_days(
            days,
            threshold=threshold,
            threshold_disabled=args.disable_threshold,
            dry_run=args.dry_run,
            confirm_each=args.confirm,
        )
        auth = AuthManager(token=args.token, interactive=sys.stdin.isatty())
        client = auth.build_client(
            base_url=settings.base_url,
            timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            page_size=settings.page_size,
            include_never_signed_in=args.include_never or settings.include_never_signed_in,
        )
    except StalesweepError as e:
        handle_error(console, e, "Startup", show_details=True)
        return EXIT_ERROR

    with client:
        if args.list:
            try:
                cutoff = compute_cutoff(datetime.now(timezone.utc), policy.inactivity_window)
                ui.show_candidates(client.list_stale(cutoff), limit=args.limit)
            except StalesweepError as e:
                handle_error(console, e, "Listing devices", show_details=True)
                return EXIT_ERROR
            return EXIT_OK

        ui.show_header(days, policy.dry_run)
        workflow = CleanupWorkflow(
            client,
            policy,
            tracker=ProgressTracker(on_snapshot=ui.show_progress),
            ui=ui,
        )
        try:
            workflow.run()
        except (KeyboardInterrupt, EOFError):
            console.print("[yellow]Interrupted by user[/]")
            return EXIT_INTERRUPTED
        except StalesweepError as e:
            logger.error("Cleanup aborted: %s", e.message)
            handle_error(console, e, "Cleanup", show_details=True)
            return EXIT_ERROR

    return EXIT_OK
