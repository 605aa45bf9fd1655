"""Populate the archive directory with verified .crate files.

For every selected record the archive either already holds
``{name}-{version}.crate`` (optionally re-verified) or the file is downloaded,
checked against the index checksum, written to ``{name}-{version}.crate.part``
and renamed into place. A crash at any point leaves at most a stale ``.part``
file, which the next run overwrites.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cratemirror.checksum import (
    compute_file_sha256,
    digest,
    digest_matches,
    is_not_found_payload,
)
from cratemirror.errors import (
    ArchiveIOError,
    ArtifactUnavailableError,
    ChecksumMismatchError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from cratemirror.fetcher import Fetcher
    from cratemirror.index.record import IndexRecord
    from cratemirror.registry_config import RegistryConfig

logger = logging.getLogger(__name__)

STATIC_BASE_URL = "https://static.crates.io/crates"
PART_SUFFIX = ".part"

# Markers understood in the ``dl`` template; without any of them the
# "/{crate}/{version}/download" path is appended.
_DL_MARKERS = ("{crate}", "{version}", "{prefix}", "{lowerprefix}", "{sha256-checksum}")


@dataclass(frozen=True)
class FetchPolicy:
    """Archive population options.

    Attributes:
        verify_checksums: Re-hash artifacts that already exist in the archive.
        strict: Treat a checksum mismatch on a fresh download as fatal.
        prefer_original_download_url: Download through the registry ``dl``
            location instead of the static asset host.
        static_base_url: Base of the static asset host.
    """

    verify_checksums: bool = True
    strict: bool = False
    prefer_original_download_url: bool = False
    static_base_url: str = STATIC_BASE_URL


@dataclass(frozen=True)
class ChecksumMismatch:
    """A fresh download whose digest did not match the index."""

    name: str
    version: str
    expected: str
    actual: str

    def __str__(self) -> str:
        return f"{self.name}-{self.version}: expected {self.expected}, got {self.actual}"


@dataclass
class FetchReport:
    """Outcome of one archive population pass."""

    downloaded: int = 0
    skipped: int = 0
    verified: int = 0
    mismatches: list[ChecksumMismatch] = field(default_factory=list)

    @property
    def has_mismatches(self) -> bool:
        return bool(self.mismatches)


def crate_prefix(name: str) -> str:
    """Directory prefix used by crates.io for a crate name."""
    if len(name) <= 2:
        return str(len(name))
    if len(name) == 3:
        return f"3/{name[0]}"
    return f"{name[:2]}/{name[2:4]}"


def render_download_url(template: str, record: IndexRecord) -> str:
    """Expand a registry ``dl`` template for one record."""
    if not any(marker in template for marker in _DL_MARKERS):
        return f"{template.rstrip('/')}/{record.name}/{record.version}/download"
    prefix = crate_prefix(record.name)
    return (
        template.replace("{crate}", record.name)
        .replace("{version}", record.version)
        .replace("{prefix}", prefix)
        .replace("{lowerprefix}", prefix.lower())
        .replace("{sha256-checksum}", record.checksum)
    )


def static_download_url(base_url: str, record: IndexRecord) -> str:
    """URL of the artifact on the static asset host (not counted as a download)."""
    return f"{base_url.rstrip('/')}/{record.name}/{record.filename}"


def format_mismatch_summary(mismatches: Iterable[ChecksumMismatch]) -> str:
    """Human-readable end-of-run listing of deferred mismatches."""
    items = list(mismatches)
    lines = [f"Warning: {len(items)} .crate file(s) failed checksum verification and were skipped:"]
    lines.extend(
        f"  {m.name}-{m.version}: expected {m.expected} but received file with hash {m.actual}"
        for m in items
    )
    return "\n".join(lines)


class ArchiveFetcher:
    """
    Sequential downloader that keeps the archive consistent with the index.

    Records are processed one at a time in record-set order; nothing runs
    concurrently.
    """

    def __init__(
        self,
        archive_root: Path,
        fetcher: Fetcher,
        policy: FetchPolicy | None = None,
    ) -> None:
        self._archive_root = archive_root
        self._fetcher = fetcher
        self._policy = policy or FetchPolicy()

    @property
    def policy(self) -> FetchPolicy:
        return self._policy

    def target_path(self, record: IndexRecord) -> Path:
        return self._archive_root / record.filename

    def download_url(self, record: IndexRecord, config: RegistryConfig) -> str:
        if self._policy.prefer_original_download_url:
            return render_download_url(config.download_base_url, record)
        return static_download_url(self._policy.static_base_url, record)

    async def fetch_all(
        self,
        records: Iterable[IndexRecord],
        config: RegistryConfig,
    ) -> FetchReport:
        """
        Ensure every record's artifact exists and is valid in the archive.

        Returns:
            FetchReport; in non-strict mode it lists the skipped mismatches.

        Raises:
            ChecksumMismatchError: Existing artifact is corrupt, or strict mode
                and a download does not match.
            ArtifactUnavailableError: Upstream returned its "not found" body.
            FetchError: Transport failure.
            ArchiveIOError: Read, write or rename failure in the archive.
        """
        report = FetchReport()
        for record in records:
            await self.fetch_one(record, config, report)

        if report.has_mismatches:
            logger.warning(
                format_mismatch_summary(report.mismatches),
                extra={"mismatch_count": len(report.mismatches)},
            )
        logger.info(
            "Archive pass complete",
            extra={
                "downloaded": report.downloaded,
                "skipped": report.skipped,
                "verified": report.verified,
                "mismatched": len(report.mismatches),
            },
        )
        return report

    async def fetch_one(
        self,
        record: IndexRecord,
        config: RegistryConfig,
        report: FetchReport,
    ) -> None:
        """Skip, verify or download a single record, updating ``report``."""
        target = self.target_path(record)

        if target.exists():
            if self._policy.verify_checksums:
                self._verify_existing(target, record)
                report.verified += 1
            else:
                report.skipped += 1
            logger.debug("Already archived", extra={"crate": str(record)})
            return

        url = self.download_url(record, config)
        logger.info(f"Fetching {record.name} version {record.version} from {url}")
        data = await self._fetcher.get(url)

        actual = digest(data)
        if is_not_found_payload(actual):
            raise ArtifactUnavailableError(record.name, record.version)

        if not digest_matches(actual, record.checksum):
            if self._policy.strict:
                raise ChecksumMismatchError(f"{record.name}-{record.version}", record.checksum, actual)
            logger.warning(
                "Checksum mismatch, skipping",
                extra={"crate": str(record), "expected": record.checksum, "actual": actual},
            )
            report.mismatches.append(
                ChecksumMismatch(
                    name=record.name,
                    version=record.version,
                    expected=record.checksum,
                    actual=actual,
                )
            )
            return

        self._materialize(target, data)
        report.downloaded += 1

    def _verify_existing(self, target: Path, record: IndexRecord) -> None:
        try:
            actual = compute_file_sha256(target)
        except OSError as e:
            raise ArchiveIOError(f"Error reading {target}: {e}") from e
        if not digest_matches(actual, record.checksum):
            raise ChecksumMismatchError(str(target), record.checksum, actual)

    def _materialize(self, target: Path, data: bytes) -> None:
        """Write ``data`` next to ``target`` and rename it into place."""
        part = target.with_name(target.name + PART_SUFFIX)
        try:
            part.write_bytes(data)
        except OSError as e:
            raise ArchiveIOError(f"Error writing to {part}: {e}") from e
        try:
            part.replace(target)
        except OSError as e:
            raise ArchiveIOError(f"Error renaming {part} to {target}: {e}") from e
