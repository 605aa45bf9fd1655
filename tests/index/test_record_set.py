"""Tests for the canonical RecordSet."""

from __future__ import annotations

from cratemirror.index.record import IndexRecord
from cratemirror.index.record_set import RecordSet


class TestRecordSet:
    """Tests for RecordSet."""

    def test_deduplicates_by_name_and_version(self) -> None:
        records = RecordSet()
        records.add(IndexRecord("foo", "1.0.0", checksum="aa"))
        records.add(IndexRecord("foo", "1.0.0", checksum="bb"))
        assert len(records) == 1

    def test_last_add_wins(self) -> None:
        records = RecordSet()
        records.add(IndexRecord("foo", "1.0.0", yanked=False, checksum="aa"))
        records.add(IndexRecord("foo", "1.0.0", yanked=True, checksum="bb"))
        (stored,) = list(records)
        assert stored.yanked is True
        assert stored.checksum == "bb"

    def test_iterates_in_sorted_order(self) -> None:
        records = RecordSet(
            [
                IndexRecord("zeta", "1.0.0"),
                IndexRecord("alpha", "2.0.0"),
                IndexRecord("alpha", "10.0.0"),
            ]
        )
        assert [str(r) for r in records] == ["alpha@10.0.0", "alpha@2.0.0", "zeta@1.0.0"]

    def test_discard(self) -> None:
        records = RecordSet([IndexRecord("foo", "1.0.0")])
        assert records.discard("foo", "1.0.0") is True
        assert records.discard("foo", "1.0.0") is False
        assert len(records) == 0

    def test_contains_by_key_or_record(self) -> None:
        records = RecordSet([IndexRecord("foo", "1.0.0")])
        assert ("foo", "1.0.0") in records
        assert IndexRecord("foo", "1.0.0", checksum="other") in records
        assert ("foo", "2.0.0") not in records
        assert "foo" not in records
