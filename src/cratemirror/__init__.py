"""Offline mirror of the crates.io package registry.

Synchronizes the git-hosted index, selects the package versions to keep,
downloads their .crate files with SHA256 verification and maintains a local
archive that is always safe to resume.
"""

__version__ = "0.4.0"
__homepage__ = "https://pypi.org/project/cratemirror/"
