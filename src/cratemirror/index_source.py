"""Git-backed index checkout.

The index is a plain git repository. Synchronizing means clone-or-reset to
the single remote's default branch; committing means recording exactly one
changed file on top of HEAD with a fixed identity. Both go through the
``git`` executable.
"""

from __future__ import annotations

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from cratemirror.errors import IndexSourceError

logger = logging.getLogger(__name__)

DEFAULT_INDEX_URL = "https://github.com/rust-lang/crates.io-index"
COMMIT_AUTHOR_NAME = "cratemirror"
COMMIT_AUTHOR_EMAIL = "no-email"


class VersionedIndexSource(ABC):
    """Abstract versioned store holding the index checkout."""

    @abstractmethod
    def ensure_up_to_date(self, local_path: Path, remote_url: str) -> None:
        """Clone ``remote_url`` into ``local_path`` or hard-reset it to the remote tip."""
        ...

    @abstractmethod
    def commit_file(
        self,
        local_path: Path,
        relative_path: str,
        message: str,
        author_name: str = COMMIT_AUTHOR_NAME,
    ) -> str:
        """Commit one file on top of HEAD. Returns the new commit id."""
        ...


class GitIndexSource(VersionedIndexSource):
    """VersionedIndexSource driving the git command line."""

    def __init__(self, git: str = "git", timeout_s: float | None = None) -> None:
        self._git = git
        self._timeout_s = timeout_s

    def _run(
        self,
        args: list[str],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> str:
        cmd = [self._git, *args]
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                env=env,
                capture_output=True,
                text=True,
                check=True,
                timeout=self._timeout_s,
            )
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise IndexSourceError(f"git {args[0]} failed: {stderr or e}") from e
        except (subprocess.TimeoutExpired, FileNotFoundError) as e:
            raise IndexSourceError(f"git {args[0]} failed: {e}") from e
        return result.stdout.strip()

    def ensure_up_to_date(self, local_path: Path, remote_url: str) -> None:
        if not local_path.is_dir():
            logger.info(f"Cloning index directory into {local_path}")
            self._run(["clone", remote_url, str(local_path)])
            logger.info("Done cloning index directory")
            return

        logger.info("Updating index repository", extra={"path": str(local_path)})
        remote = self._single_remote(local_path)
        self._run(["fetch", remote], cwd=local_path)
        target = self._remote_default_ref(local_path, remote)
        self._run(["reset", "--hard", target], cwd=local_path)
        logger.info("Done updating index repository", extra={"ref": target})

    def _single_remote(self, local_path: Path) -> str:
        remotes = self._run(["remote"], cwd=local_path).split()
        if not remotes:
            raise IndexSourceError("index repository has zero remotes")
        if len(remotes) > 1:
            raise IndexSourceError("index has more than 1 remote")
        return remotes[0]

    def _remote_default_ref(self, local_path: Path, remote: str) -> str:
        """Resolve ``<remote>/HEAD``, falling back to ``<remote>/master``."""
        try:
            return self._run(
                ["symbolic-ref", "--short", f"refs/remotes/{remote}/HEAD"], cwd=local_path
            )
        except IndexSourceError:
            return f"{remote}/master"

    def commit_file(
        self,
        local_path: Path,
        relative_path: str,
        message: str,
        author_name: str = COMMIT_AUTHOR_NAME,
    ) -> str:
        # add -> write-tree -> commit-tree on HEAD -> move HEAD
        self._run(["add", "--", relative_path], cwd=local_path)
        tree = self._run(["write-tree"], cwd=local_path)
        parent = self._run(["rev-parse", "HEAD"], cwd=local_path)

        env = dict(os.environ)
        env.update(
            {
                "GIT_AUTHOR_NAME": author_name,
                "GIT_AUTHOR_EMAIL": COMMIT_AUTHOR_EMAIL,
                "GIT_COMMITTER_NAME": author_name,
                "GIT_COMMITTER_EMAIL": COMMIT_AUTHOR_EMAIL,
            }
        )
        commit = self._run(
            ["commit-tree", tree, "-p", parent, "-m", message], cwd=local_path, env=env
        )
        self._run(["update-ref", "-m", f"commit: {message}", "HEAD", commit, parent], cwd=local_path)
        logger.info("Committed index change", extra={"file": relative_path, "commit": commit})
        return commit
