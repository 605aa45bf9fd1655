"""Replace the registry download location and commit the change to the index."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cratemirror.errors import IndexSourceError, RegistryConfigError
from cratemirror.index_source import COMMIT_AUTHOR_NAME
from cratemirror.registry_config import (
    CONFIG_FILENAME,
    apply_new_download_url,
    config_path,
    read_config,
    write_config,
)

if TYPE_CHECKING:
    from pathlib import Path

    from cratemirror.index_source import VersionedIndexSource

logger = logging.getLogger(__name__)

COMMIT_MESSAGE = "cratemirror updating DL location"


def replace_download_url(
    new_url: str,
    index_root: Path,
    source: VersionedIndexSource,
) -> bool:
    """Point the index's ``dl`` at ``new_url`` and commit config.json.

    Args:
        new_url: New download base URL.
        index_root: Index checkout root.
        source: Versioned store used to record the change.

    Returns:
        True if the config changed and was committed, False if ``new_url``
        already was the download location.

    Raises:
        RegistryConfigError: If the config cannot be read or written.
        IndexSourceError: If the commit fails. config.json is restored to
            its previous contents first.
    """
    config = read_config(index_root)
    if new_url == config.download_base_url:
        logger.info("Download URL unchanged", extra={"dl": new_url})
        return False

    path = config_path(index_root)
    try:
        previous = path.read_bytes()
    except OSError as e:
        raise RegistryConfigError(f"Error opening file {path}: {e}") from e

    write_config(apply_new_download_url(config, new_url), index_root)
    try:
        source.commit_file(index_root, CONFIG_FILENAME, COMMIT_MESSAGE, COMMIT_AUTHOR_NAME)
    except IndexSourceError:
        logger.error("Commit failed, restoring config.json", extra={"dl": config.download_base_url})
        try:
            path.write_bytes(previous)
        except OSError as e:
            raise RegistryConfigError(f"Error restoring file {path}: {e}") from e
        raise
    logger.info(f"Replaced DL url with {new_url}")
    return True
