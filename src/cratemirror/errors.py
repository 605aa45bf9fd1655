"""Error hierarchy for mirror runs.

Every fatal condition raised by the core derives from MirrorError. Only
cratemirror.cli turns these into a printed message and a non-zero exit status.
"""

from __future__ import annotations


class MirrorError(Exception):
    """Base exception for all fatal mirror conditions."""


class SettingsError(MirrorError):
    """Raised when run settings fail validation."""


class IndexParseError(MirrorError):
    """Raised when an index file cannot be read or a line fails to parse."""


class RegistryConfigError(MirrorError):
    """Raised when the registry config document is missing, malformed or unwritable."""


class ArchiveIOError(MirrorError):
    """Raised on any read, write or rename failure inside the archive directory."""


class FetchError(MirrorError):
    """Raised when a download fails at the transport level (incl. non-2xx status)."""


class ArtifactUnavailableError(MirrorError):
    """Raised when the upstream answers with its disguised "not found" payload."""

    def __init__(self, name: str, version: str) -> None:
        super().__init__(f"Warning: crate {name}-{version} could not be downloaded!")
        self.name = name
        self.version = version


class ChecksumMismatchError(MirrorError):
    """Raised when content does not match its declared sha256 and the mismatch is fatal."""

    def __init__(self, subject: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Checksum mismatch in {subject}. Expected {expected} but got {actual}"
        )
        self.subject = subject
        self.expected = expected
        self.actual = actual


class IndexSourceError(MirrorError):
    """Raised when synchronizing or committing to the index repository fails."""
