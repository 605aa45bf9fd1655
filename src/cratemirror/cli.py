"""
Command-line entry point.

Usage:
    cratemirror [options] ARCHIVE-DIRECTORY

    # Mirror every non-yanked version, verifying existing files:
    cratemirror /srv/crates

    # Newest version of each crate only, then point the index at a local host:
    cratemirror --latest-only --replace http://mirror.local/crates /srv/crates

Exit code 0 on success, 1 on any fatal condition.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from cratemirror import __homepage__, __version__
from cratemirror.archive import STATIC_BASE_URL, format_mismatch_summary
from cratemirror.errors import MirrorError, SettingsError
from cratemirror.logging_config import setup_logging
from cratemirror.pipeline import run_mirror
from cratemirror.settings import MirrorSettings

logger = logging.getLogger(__name__)

PROG = "cratemirror"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        usage=f"{PROG} [options] ARCHIVE-DIRECTORY",
        description="Mirror the crates.io index and .crate files to a local archive.",
    )
    parser.add_argument(
        "archive",
        nargs="*",
        type=Path,
        help="Archive directory (the index is kept in ARCHIVE-DIRECTORY/index)",
    )

    # Index
    parser.add_argument(
        "--no-update-index",
        action="store_true",
        help="Don't update the index",
    )
    parser.add_argument(
        "--index-url",
        default="",
        help="Index repository to clone (default: crates.io-index or $CRATEMIRROR_INDEX_URL)",
    )
    parser.add_argument(
        "--yanked",
        action="store_true",
        help="Also download yanked .crate files",
    )
    parser.add_argument(
        "--latest-only",
        action="store_true",
        help="Only download the newest version listed for each crate",
    )

    # Archive
    parser.add_argument(
        "--no-check-sums",
        action="store_true",
        help="Don't verify the checksums of .crate files already in the archive",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Stop at the first checksum mismatch instead of reporting it at the end",
    )
    parser.add_argument(
        "--use-dl-url",
        action="store_true",
        help="Download through the index's dl URL instead of the static asset host",
    )
    parser.add_argument(
        "--static-base",
        default=STATIC_BASE_URL,
        help=f"Static asset host base URL (default: {STATIC_BASE_URL})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-download timeout in seconds (default: 60 or $CRATEMIRROR_TIMEOUT_S)",
    )
    parser.add_argument(
        "--replace",
        metavar="URL",
        default=None,
        help="Specify the URL to replace the index repository dl url",
    )

    # Output
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit JSON log lines",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="print program version",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> MirrorSettings:
    """Build run settings from parsed arguments.

    Raises:
        SettingsError: If the arguments do not form a valid run.
    """
    if not args.archive:
        return MirrorSettings(archive_dir="")
    if len(args.archive) > 1:
        raise SettingsError("You cannot specify more than one archive location.")

    return MirrorSettings(
        archive_dir=args.archive[0],
        index_url=args.index_url,
        update_index=not args.no_update_index,
        include_yanked=args.yanked,
        include_old_versions=not args.latest_only,
        verify_checksums=not args.no_check_sums,
        strict=args.strict,
        prefer_original_download_url=args.use_dl_url,
        replace_download_url=args.replace,
        static_base_url=args.static_base,
        request_timeout_s=args.timeout,
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"{PROG} {__version__}")
        print(__homepage__)
        return 0

    setup_logging(level=args.log_level, json_format=args.log_json)

    try:
        settings = settings_from_args(args)
        result = asyncio.run(run_mirror(settings))
    except MirrorError as e:
        logger.error("Mirror run failed", extra={"error": str(e)})
        print(e)
        return 1

    report = result.report
    if report.has_mismatches:
        print(format_mismatch_summary(report.mismatches))

    logger.info(
        "Mirror run complete",
        extra={
            "selected": result.selected,
            "downloaded": report.downloaded,
            "verified": report.verified,
            "skipped": report.skipped,
            "mismatched": len(report.mismatches),
            "dl_replaced": result.download_url_replaced,
        },
    )
    return 0


def run() -> None:
    """Console script wrapper."""
    sys.exit(main())


if __name__ == "__main__":
    run()
