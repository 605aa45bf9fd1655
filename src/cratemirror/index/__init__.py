"""Index parsing and version selection."""

from cratemirror.index.denylist import UNAVAILABLE_RELEASES
from cratemirror.index.reader import (
    IndexPolicy,
    iter_shard_files,
    read_index,
    read_shard,
    remove_unavailable,
    select_records,
)
from cratemirror.index.record import IndexRecord
from cratemirror.index.record_set import RecordSet

__all__ = [
    "UNAVAILABLE_RELEASES",
    "IndexPolicy",
    "IndexRecord",
    "RecordSet",
    "iter_shard_files",
    "read_index",
    "read_shard",
    "remove_unavailable",
    "select_records",
]
