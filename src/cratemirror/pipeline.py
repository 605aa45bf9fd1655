"""One complete mirror run: sync index, select records, fill archive, update config."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cratemirror.archive import ArchiveFetcher, FetchReport
from cratemirror.config_updater import replace_download_url
from cratemirror.errors import ArchiveIOError
from cratemirror.fetcher import AiohttpFetcher
from cratemirror.index.reader import read_index
from cratemirror.index_source import GitIndexSource
from cratemirror.registry_config import read_config

if TYPE_CHECKING:
    from pathlib import Path

    from cratemirror.fetcher import Fetcher
    from cratemirror.index_source import VersionedIndexSource
    from cratemirror.settings import MirrorSettings

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Summary of a finished run."""

    selected: int
    report: FetchReport
    download_url_replaced: bool = False


def prepare_archive_dir(path: Path) -> None:
    """Create the archive directory if needed (one level only).

    Raises:
        ArchiveIOError: If ``path`` exists but is not a directory, or cannot be created.
    """
    if path.is_dir():
        return
    if path.exists():
        raise ArchiveIOError(f"File already exists: {path}")
    try:
        path.mkdir()
    except OSError as e:
        raise ArchiveIOError(f"Error creating directory {path}: {e}") from e


async def run_mirror(
    settings: MirrorSettings,
    source: VersionedIndexSource | None = None,
    fetcher: Fetcher | None = None,
) -> RunResult:
    """
    Execute a full mirror run.

    Args:
        settings: Run options.
        source: Index store; a GitIndexSource by default.
        fetcher: Download transport; an AiohttpFetcher by default (closed on exit).

    Returns:
        RunResult with the archive report.

    Raises:
        MirrorError: Any fatal condition; the run stops at the first one.
    """
    source = source or GitIndexSource()
    prepare_archive_dir(settings.archive_dir)

    if settings.update_index:
        source.ensure_up_to_date(settings.index_dir, settings.index_url)

    config = read_config(settings.index_dir)
    records = read_index(settings.index_dir, settings.index_policy())

    owns_fetcher = fetcher is None
    if fetcher is None:
        assert settings.request_timeout_s is not None  # set in __post_init__
        fetcher = AiohttpFetcher(
            timeout_s=settings.request_timeout_s,
            user_agent=settings.user_agent,
        )
    try:
        archive = ArchiveFetcher(settings.archive_dir, fetcher, settings.fetch_policy())
        report = await archive.fetch_all(records, config)
    finally:
        if owns_fetcher:
            await fetcher.close()

    replaced = False
    if settings.replace_download_url is not None:
        replaced = replace_download_url(
            settings.replace_download_url, settings.index_dir, source
        )

    return RunResult(selected=len(records), report=report, download_url_replaced=replaced)
