"""Read the synchronized crates.io-index checkout into a canonical record set.

Index layout: one shard file per package (nested under prefix directories),
one JSON record per line, oldest version first. Hidden entries (``.git``,
``.github``, dotfiles) and the registry ``config.json`` are not shards.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from cratemirror.errors import IndexParseError
from cratemirror.index.denylist import UNAVAILABLE_RELEASES
from cratemirror.index.record import IndexRecord
from cratemirror.index.record_set import RecordSet

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"


@dataclass(frozen=True)
class IndexPolicy:
    """Selection policy applied while reading the index.

    Attributes:
        include_yanked: Keep versions marked as yanked.
        include_old_versions: Keep every version; when False only the last
            line of each shard (the newest version) is eligible.
    """

    include_yanked: bool = False
    include_old_versions: bool = True


def _is_excluded(name: str) -> bool:
    return name.startswith(".") or name == CONFIG_FILENAME


def iter_shard_files(index_root: Path) -> Iterator[Path]:
    """Yield every shard file below ``index_root`` in sorted path order.

    Hidden directories are pruned, so nothing under ``.git`` is visited.
    """
    for dirpath, dirnames, filenames in os.walk(index_root):
        dirnames[:] = sorted(d for d in dirnames if not _is_excluded(d))
        for filename in sorted(filenames):
            if _is_excluded(filename):
                continue
            path = Path(dirpath) / filename
            if path.is_file():
                yield path


def read_shard(path: Path) -> list[IndexRecord]:
    """Parse every record in one shard file, in file order.

    Every line must be a record; a line that fails to parse (blank lines
    included) is fatal.

    Raises:
        IndexParseError: If the file cannot be read or a line is malformed.
    """
    records: list[IndexRecord] = []
    try:
        with path.open("rb") as f:
            for lineno, line in enumerate(f, start=1):
                try:
                    records.append(IndexRecord.from_json(line))
                except IndexParseError as e:
                    raise IndexParseError(f"Error parsing json in {path}:{lineno}: {e}") from e
    except OSError as e:
        raise IndexParseError(f"Error reading file {path}: {e}") from e
    return records


def select_records(records: list[IndexRecord], policy: IndexPolicy) -> Iterator[IndexRecord]:
    """Apply the yanked and old-version rules to the records of one shard."""
    last = len(records) - 1
    for position, record in enumerate(records):
        if record.yanked and not policy.include_yanked:
            continue
        if not policy.include_old_versions and position != last:
            continue
        yield record


def remove_unavailable(
    records: RecordSet,
    deny_list: Iterable[tuple[str, str]] = UNAVAILABLE_RELEASES,
) -> int:
    """Drop deny-listed releases from ``records``. Returns how many were removed."""
    removed = 0
    for name, version in deny_list:
        if records.discard(name, version):
            removed += 1
    return removed


def read_index(
    index_root: Path,
    policy: IndexPolicy | None = None,
    deny_list: Iterable[tuple[str, str]] = UNAVAILABLE_RELEASES,
) -> RecordSet:
    """Read the index checkout and return the canonical set of records to mirror.

    Args:
        index_root: Root of the synchronized index checkout.
        policy: Yanked/old-version selection policy.
        deny_list: (name, version) pairs that are always excluded.

    Returns:
        RecordSet with at most one record per (name, version).

    Raises:
        IndexParseError: If any shard file is unreadable or malformed.
    """
    policy = policy or IndexPolicy()
    logger.info("Reading the crates index", extra={"index_root": str(index_root)})

    records = RecordSet()
    shard_count = 0
    for shard in iter_shard_files(index_root):
        shard_count += 1
        for record in select_records(read_shard(shard), policy):
            records.add(record)

    removed = remove_unavailable(records, deny_list)
    logger.info(
        "Finished reading crates index",
        extra={"shards": shard_count, "records": len(records), "denied": removed},
    )
    logger.info(f"Found info for {len(records)} .crate files")
    return records
