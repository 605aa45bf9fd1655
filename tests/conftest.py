"""Shared fixtures: on-disk index checkouts and an in-memory fetcher."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, Any

import orjson
import pytest

from cratemirror.errors import FetchError
from cratemirror.fetcher import Fetcher

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


class FakeFetcher(Fetcher):
    """Serves canned payloads by URL and records every request."""

    def __init__(self, payloads: dict[str, bytes] | None = None) -> None:
        self.payloads: dict[str, bytes] = dict(payloads or {})
        self.requests: list[str] = []
        self.closed = False

    async def get(self, url: str) -> bytes:
        self.requests.append(url)
        if url not in self.payloads:
            raise FetchError(f"Error downloading {url}: HTTP 404")
        return self.payloads[url]

    async def close(self) -> None:
        self.closed = True


def index_line(name: str, vers: str, payload: bytes, *, yanked: bool = False) -> dict[str, Any]:
    return {
        "name": name,
        "vers": vers,
        "deps": [],
        "cksum": hashlib.sha256(payload).hexdigest(),
        "features": {},
        "yanked": yanked,
    }


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def write_index(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing an index checkout.

    ``shards`` maps a relative shard path to its list of decoded lines.
    """

    def _write(
        shards: dict[str, list[dict[str, Any]]],
        config: dict[str, Any] | None = None,
        root: Path | None = None,
    ) -> Path:
        index_root = root or tmp_path / "index"
        index_root.mkdir(parents=True, exist_ok=True)
        if config is None:
            config = {"dl": "https://crates.io/api/v1/crates", "api": "https://crates.io"}
        (index_root / "config.json").write_bytes(orjson.dumps(config))
        for rel, lines in shards.items():
            path = index_root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"".join(orjson.dumps(line) + b"\n" for line in lines))
        return index_root

    return _write


@pytest.fixture
def line() -> Callable[..., dict[str, Any]]:
    """Build one decoded index line whose cksum matches ``payload``."""
    return index_line
