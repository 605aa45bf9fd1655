"""Registry config document (``config.json`` at the index root).

    {"dl": "https://crates.io/api/v1/crates", "api": "https://crates.io", "dl_orig": null}

``dl_orig`` is added the first time the download location is replaced and
keeps the upstream value from then on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cratemirror.errors import RegistryConfigError

if TYPE_CHECKING:
    from pathlib import Path

CONFIG_FILENAME = "config.json"


class RegistryConfig(BaseModel):
    """Download and API locations of the registry.

    Attributes:
        download_base_url: Download URL template (``dl``).
        api_base_url: API base URL (``api``), carried through unchanged.
        original_download_base_url: ``dl`` value before the first replacement.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    download_base_url: str = Field(..., alias="dl", description="Download URL template")
    api_base_url: str = Field(..., alias="api", description="Registry API base URL")
    original_download_base_url: str | None = Field(
        default=None, alias="dl_orig", description="Download URL before first replacement"
    )

    def to_json(self) -> bytes:
        """Serialize with the document's field names."""
        return orjson.dumps(self.model_dump(by_alias=True))

    @classmethod
    def from_json(cls, data: bytes | str) -> RegistryConfig:
        """Deserialize from the document's JSON form."""
        if isinstance(data, str):
            data = data.encode()
        return cls.model_validate(orjson.loads(data))


def config_path(index_root: Path) -> Path:
    return index_root / CONFIG_FILENAME


def read_config(index_root: Path) -> RegistryConfig:
    """Load the registry config from the index checkout.

    Raises:
        RegistryConfigError: If the file is missing, unreadable or malformed.
    """
    path = config_path(index_root)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise RegistryConfigError(f"Error opening file {path}: {e}") from e

    try:
        return RegistryConfig.from_json(raw)
    except (orjson.JSONDecodeError, ValidationError) as e:
        raise RegistryConfigError(f"Error parsing {path}: {e}") from e


def write_config(config: RegistryConfig, index_root: Path) -> None:
    """Overwrite the registry config document.

    Raises:
        RegistryConfigError: On any I/O failure.
    """
    path = config_path(index_root)
    try:
        path.write_bytes(config.to_json())
    except OSError as e:
        raise RegistryConfigError(f"Error writing to file {path}: {e}") from e


def apply_new_download_url(config: RegistryConfig, new_url: str) -> RegistryConfig:
    """Return ``config`` with its download URL replaced by ``new_url``.

    The first replacement records the previous URL as the original; later
    replacements leave the recorded original untouched.
    """
    if new_url == config.download_base_url:
        return config
    original = config.original_download_base_url
    if original is None:
        original = config.download_base_url
    return config.model_copy(
        update={
            "download_base_url": new_url,
            "original_download_base_url": original,
        }
    )
