"""Identity of the target file and the predicates used to match links to it."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class TargetIdentity:
    """Immutable (device, inode, canonical path) record of the target file."""

    device: int
    inode: int
    canonical_path: Path

    @classmethod
    def from_stat(cls, canonical_path: Path, st: os.stat_result) -> TargetIdentity:
        """Build an identity from already-collected metadata.

        Args:
            canonical_path: Fully resolved path of the target.
            st: Result of a non-link-following stat of ``canonical_path``.

        Returns:
            Identity of the target.

        """
        return cls(device=st.st_dev, inode=st.st_ino, canonical_path=canonical_path)

    @classmethod
    def from_path(cls, canonical_path: Path) -> TargetIdentity:
        """Stat ``canonical_path`` without following links and build its identity."""
        return cls.from_stat(canonical_path, canonical_path.lstat())

    def is_hard_link_match(self, entry_stat: os.stat_result, entry_path: Path) -> bool:
        """Check whether an entry is another hard link to the target.

        The canonical target path itself never matches.

        Args:
            entry_stat: Non-link-following stat of the entry.
            entry_path: Path the entry was found at.

        Returns:
            True if the entry is a regular file sharing the target's device and inode.

        """
        return (
            stat.S_ISREG(entry_stat.st_mode)
            and entry_stat.st_dev == self.device
            and entry_stat.st_ino == self.inode
            and entry_path != self.canonical_path
        )

    def is_soft_link_match(self, resolved_path: Path) -> bool:
        """Check whether a resolved symbolic link points at the target path."""
        return resolved_path == self.canonical_path

    def __str__(self) -> str:
        return f"TargetIdentity({self.canonical_path} dev={self.device} ino={self.inode})"
