"""
Run configuration.

All options of a mirror run in one validated object. Values not given
explicitly fall back to environment variables, then to defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlsplit

from cratemirror.archive import STATIC_BASE_URL, FetchPolicy
from cratemirror.errors import SettingsError
from cratemirror.fetcher import DEFAULT_USER_AGENT
from cratemirror.index.reader import IndexPolicy
from cratemirror.index_source import DEFAULT_INDEX_URL

INDEX_DIRNAME = "index"
DEFAULT_TIMEOUT_S = 60.0


def _env_timeout() -> float:
    raw = os.environ.get("CRATEMIRROR_TIMEOUT_S", "")
    if not raw:
        return DEFAULT_TIMEOUT_S
    try:
        return float(raw)
    except ValueError as e:
        raise SettingsError(f"CRATEMIRROR_TIMEOUT_S must be a number, got {raw!r}") from e


@dataclass
class MirrorSettings:
    """Options for one mirror run."""

    archive_dir: Path
    index_url: str = ""  # From CRATEMIRROR_INDEX_URL env var
    update_index: bool = True
    include_yanked: bool = False
    include_old_versions: bool = True
    verify_checksums: bool = True
    strict: bool = False
    prefer_original_download_url: bool = False
    replace_download_url: str | None = None
    static_base_url: str = STATIC_BASE_URL
    request_timeout_s: float | None = None  # From CRATEMIRROR_TIMEOUT_S env var
    user_agent: str = field(default=DEFAULT_USER_AGENT)

    def __post_init__(self) -> None:
        if isinstance(self.archive_dir, str) and not self.archive_dir.strip():
            raise SettingsError("You must specify an archive location.")
        self.archive_dir = Path(self.archive_dir)
        if not self.index_url:
            self.index_url = os.environ.get("CRATEMIRROR_INDEX_URL", "") or DEFAULT_INDEX_URL
        if self.request_timeout_s is None:
            self.request_timeout_s = _env_timeout()
        if self.request_timeout_s <= 0:
            raise SettingsError(f"request_timeout_s must be > 0, got {self.request_timeout_s}")
        if self.replace_download_url is not None:
            scheme = urlsplit(self.replace_download_url).scheme
            if scheme not in ("http", "https"):
                raise SettingsError(
                    f"Replacement download URL must be http(s), got {self.replace_download_url!r}"
                )

    @property
    def index_dir(self) -> Path:
        """Location of the index checkout inside the archive."""
        return self.archive_dir / INDEX_DIRNAME

    def index_policy(self) -> IndexPolicy:
        return IndexPolicy(
            include_yanked=self.include_yanked,
            include_old_versions=self.include_old_versions,
        )

    def fetch_policy(self) -> FetchPolicy:
        return FetchPolicy(
            verify_checksums=self.verify_checksums,
            strict=self.strict,
            prefer_original_download_url=self.prefer_original_download_url,
            static_base_url=self.static_base_url,
        )
