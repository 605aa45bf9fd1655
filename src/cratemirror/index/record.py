"""Index record model.

One line of a crates.io-index shard file describes one published version:

    {"name": "foo", "vers": "1.0.0", "deps": [...], "cksum": "ab12...", "yanked": false, ...}

Only name, vers, cksum and yanked matter for mirroring; other keys are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import orjson

from cratemirror.errors import IndexParseError


@dataclass(frozen=True, order=True)
class IndexRecord:
    """A single package version listed in the index.

    Identity and ordering use (name, version) only; version compares as a
    plain string, not as a semantic version.

    Attributes:
        name: Package identifier.
        version: Version token as written in the index.
        yanked: Whether the version has been withdrawn.
        checksum: Lowercase hex SHA256 of the .crate file.
    """

    name: str
    version: str
    yanked: bool = field(default=False, compare=False)
    checksum: str = field(default="", compare=False)

    @property
    def key(self) -> tuple[str, str]:
        """Identity key used for deduplication."""
        return (self.name, self.version)

    @property
    def filename(self) -> str:
        """Archive filename of this version's artifact."""
        return f"{self.name}-{self.version}.crate"

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IndexRecord:
        """Create from a decoded index line.

        Raises:
            IndexParseError: If a required field is missing or has the wrong type.
        """
        try:
            name = data["name"]
            version = data["vers"]
            yanked = data["yanked"]
            checksum = data["cksum"]
        except KeyError as e:
            raise IndexParseError(f"missing field {e.args[0]!r}") from e

        if not isinstance(name, str) or not isinstance(version, str):
            raise IndexParseError("fields 'name' and 'vers' must be strings")
        if not isinstance(yanked, bool):
            raise IndexParseError("field 'yanked' must be a boolean")
        if not isinstance(checksum, str):
            raise IndexParseError("field 'cksum' must be a string")

        return cls(name=name, version=version, yanked=yanked, checksum=checksum.lower())

    @classmethod
    def from_json(cls, line: bytes | str) -> IndexRecord:
        """Parse one JSON-encoded index line.

        Raises:
            IndexParseError: If the line is not a JSON object or lacks required fields.
        """
        try:
            data = orjson.loads(line)
        except orjson.JSONDecodeError as e:
            raise IndexParseError(f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise IndexParseError("index line is not a JSON object")
        return cls.from_dict(data)
