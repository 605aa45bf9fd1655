"""Tests for a complete mirror run with in-memory collaborators."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, Any

import orjson
import pytest

from cratemirror.errors import ArchiveIOError, ChecksumMismatchError
from cratemirror.index_source import COMMIT_AUTHOR_NAME, VersionedIndexSource
from cratemirror.pipeline import prepare_archive_dir, run_mirror
from cratemirror.settings import MirrorSettings

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from conftest import FakeFetcher

STATIC = "https://static.crates.io/crates"


class StubSource(VersionedIndexSource):
    """Index source whose "sync" writes a prepared index."""

    def __init__(self, populate: Callable[[Path], None] | None = None) -> None:
        self.populate = populate
        self.synced: list[tuple[Path, str]] = []
        self.commits: list[str] = []

    def ensure_up_to_date(self, local_path: Path, remote_url: str) -> None:
        self.synced.append((local_path, remote_url))
        if self.populate is not None:
            self.populate(local_path)

    def commit_file(
        self,
        local_path: Path,
        relative_path: str,
        message: str,
        author_name: str = COMMIT_AUTHOR_NAME,
    ) -> str:
        self.commits.append(relative_path)
        return "0" * 40


def url(name: str, version: str) -> str:
    return f"{STATIC}/{name}/{name}-{version}.crate"


@pytest.fixture
def archive_dir(tmp_path: Path) -> Path:
    return tmp_path / "archive"


@pytest.fixture
def populated(
    archive_dir: Path,
    write_index: Callable[..., Path],
    line: Callable[..., dict[str, Any]],
    fake_fetcher: FakeFetcher,
) -> StubSource:
    """A stub source that writes a two-crate index, with payloads served by the fake fetcher."""
    shards = {
        "3/f/foo": [line("foo", "1.0.0", b"foo1"), line("foo", "2.0.0", b"foo2")],
        "se/rd/serde": [line("serde", "1.0.0", b"serde", yanked=True)],
    }
    fake_fetcher.payloads.update(
        {url("foo", "1.0.0"): b"foo1", url("foo", "2.0.0"): b"foo2", url("serde", "1.0.0"): b"serde"}
    )
    return StubSource(lambda path: write_index(shards, root=path))


class TestPrepareArchiveDir:
    """Tests for prepare_archive_dir."""

    def test_creates_missing_dir(self, tmp_path: Path) -> None:
        prepare_archive_dir(tmp_path / "archive")
        assert (tmp_path / "archive").is_dir()

    def test_existing_dir_ok(self, tmp_path: Path) -> None:
        prepare_archive_dir(tmp_path)

    def test_file_in_the_way(self, tmp_path: Path) -> None:
        (tmp_path / "archive").write_text("x")
        with pytest.raises(ArchiveIOError, match="File already exists"):
            prepare_archive_dir(tmp_path / "archive")

    def test_missing_parent(self, tmp_path: Path) -> None:
        with pytest.raises(ArchiveIOError, match="Error creating directory"):
            prepare_archive_dir(tmp_path / "a" / "b")


class TestRunMirror:
    """End-to-end runs."""

    @pytest.mark.asyncio
    async def test_full_run(self, archive_dir: Path, populated: StubSource, fake_fetcher: FakeFetcher) -> None:
        settings = MirrorSettings(archive_dir=archive_dir, index_url="https://git.local/index")

        result = await run_mirror(settings, source=populated, fetcher=fake_fetcher)

        assert populated.synced == [(archive_dir / "index", "https://git.local/index")]
        assert result.selected == 2
        assert result.report.downloaded == 2
        assert sorted(p.name for p in archive_dir.glob("*.crate")) == ["foo-1.0.0.crate", "foo-2.0.0.crate"]
        assert fake_fetcher.closed is False

    @pytest.mark.asyncio
    async def test_latest_only_with_yanked(
        self, archive_dir: Path, populated: StubSource, fake_fetcher: FakeFetcher
    ) -> None:
        settings = MirrorSettings(archive_dir=archive_dir, include_old_versions=False, include_yanked=True)

        result = await run_mirror(settings, source=populated, fetcher=fake_fetcher)

        assert result.selected == 2
        assert sorted(p.name for p in archive_dir.glob("*.crate")) == ["foo-2.0.0.crate", "serde-1.0.0.crate"]

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(
        self, archive_dir: Path, populated: StubSource, fake_fetcher: FakeFetcher
    ) -> None:
        settings = MirrorSettings(archive_dir=archive_dir)
        await run_mirror(settings, source=populated, fetcher=fake_fetcher)
        fake_fetcher.requests.clear()

        result = await run_mirror(settings, source=populated, fetcher=fake_fetcher)

        assert fake_fetcher.requests == []
        assert result.report.verified == 2

    @pytest.mark.asyncio
    async def test_no_update_index_uses_existing_checkout(
        self,
        archive_dir: Path,
        write_index: Callable[..., Path],
        line: Callable[..., dict[str, Any]],
        fake_fetcher: FakeFetcher,
    ) -> None:
        archive_dir.mkdir()
        write_index({"3/f/foo": [line("foo", "1.0.0", b"foo1")]}, root=archive_dir / "index")
        fake_fetcher.payloads[url("foo", "1.0.0")] = b"foo1"
        source = StubSource()

        result = await run_mirror(
            MirrorSettings(archive_dir=archive_dir, update_index=False), source=source, fetcher=fake_fetcher
        )

        assert source.synced == []
        assert result.report.downloaded == 1

    @pytest.mark.asyncio
    async def test_replace_download_url_after_fetch(
        self, archive_dir: Path, populated: StubSource, fake_fetcher: FakeFetcher
    ) -> None:
        settings = MirrorSettings(archive_dir=archive_dir, replace_download_url="http://mirror.local/crates")

        result = await run_mirror(settings, source=populated, fetcher=fake_fetcher)

        assert result.download_url_replaced is True
        assert populated.commits == ["config.json"]
        config = orjson.loads((archive_dir / "index" / "config.json").read_bytes())
        assert config["dl"] == "http://mirror.local/crates"
        assert config["dl_orig"] == "https://crates.io/api/v1/crates"

    @pytest.mark.asyncio
    async def test_non_strict_mismatch_still_succeeds(
        self, archive_dir: Path, populated: StubSource, fake_fetcher: FakeFetcher
    ) -> None:
        fake_fetcher.payloads[url("foo", "1.0.0")] = b"tampered"

        result = await run_mirror(MirrorSettings(archive_dir=archive_dir), source=populated, fetcher=fake_fetcher)

        assert [m.name for m in result.report.mismatches] == ["foo"]
        assert result.report.mismatches[0].actual == hashlib.sha256(b"tampered").hexdigest()
        assert not (archive_dir / "foo-1.0.0.crate").exists()
        assert (archive_dir / "foo-2.0.0.crate").exists()

    @pytest.mark.asyncio
    async def test_fatal_error_skips_config_replacement(
        self, archive_dir: Path, populated: StubSource, fake_fetcher: FakeFetcher
    ) -> None:
        fake_fetcher.payloads[url("foo", "1.0.0")] = b"tampered"
        settings = MirrorSettings(
            archive_dir=archive_dir, strict=True, replace_download_url="http://mirror.local/crates"
        )

        with pytest.raises(ChecksumMismatchError):
            await run_mirror(settings, source=populated, fetcher=fake_fetcher)

        assert populated.commits == []
