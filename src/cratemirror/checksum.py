"""SHA256 digests for crate payloads and archive files."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

# Digest of the body crates.io serves (with HTTP 200) for a crate it cannot find
NOT_FOUND_SENTINEL_DIGEST = "59d2652e67d6af1844f035488a12ecdd3c680554eff0bf982aad28814b5963a9"


def digest(data: bytes) -> str:
    """Compute the lowercase hex SHA256 digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


def digest_matches(actual_hex: str, expected_hex: str) -> bool:
    """Compare a computed digest with a declared one.

    The comparison is case-insensitive on the expected value so that
    checksums written in uppercase hex still match.
    """
    return actual_hex == expected_hex.lower()


def verify(data: bytes, expected_hex: str) -> bool:
    """Check whether ``data`` hashes to ``expected_hex``."""
    return digest_matches(digest(data), expected_hex)


def compute_file_sha256(filepath: Path) -> str:
    """Compute SHA256 hash of a file.

    Args:
        filepath: Path to file.

    Returns:
        Hex-encoded SHA256 hash (64 chars).

    Raises:
        FileNotFoundError: If file doesn't exist.
    """
    hasher = hashlib.sha256()
    with filepath.open("rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def is_not_found_payload(data_digest: str) -> bool:
    """Check whether a digest identifies the upstream "not found" body."""
    return data_digest == NOT_FOUND_SENTINEL_DIGEST
