"""Deduplicating, ordered collection of index records."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from cratemirror.index.record import IndexRecord


class RecordSet:
    """Canonical set of records keyed by (name, version).

    Adding a record whose key is already present replaces the stored record,
    so the latest yanked/checksum state for a key wins. Iteration is always in
    (name, version) string order.
    """

    def __init__(self, records: Iterable[IndexRecord] = ()) -> None:
        self._records: dict[tuple[str, str], IndexRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: IndexRecord) -> None:
        self._records[record.key] = record

    def discard(self, name: str, version: str) -> bool:
        """Remove the entry for (name, version). Returns True if it was present."""
        return self._records.pop((name, version), None) is not None

    def __contains__(self, item: object) -> bool:
        if isinstance(item, tuple):
            return item in self._records
        key = getattr(item, "key", None)
        return key is not None and key in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[IndexRecord]:
        for key in sorted(self._records):
            yield self._records[key]

    def __repr__(self) -> str:
        return f"RecordSet({len(self)} records)"
