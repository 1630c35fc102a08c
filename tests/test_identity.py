"""Tests for TargetIdentity and the match predicates."""

from __future__ import annotations

import os
from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from rmlinks.identity import TargetIdentity


@pytest.fixture
def target(tmp_path: Path) -> Path:
    """Create a target file with one extra hard link."""
    path = tmp_path / "target.bin"
    path.write_bytes(b"data")
    os.link(path, tmp_path / "copy.bin")
    return path


class TestTargetIdentity:
    """Tests for identity construction."""

    def test_from_path(self, target: Path) -> None:
        """Test that device and inode come from the target's stat."""
        st = target.lstat()
        identity = TargetIdentity.from_path(target)

        assert identity.device == st.st_dev
        assert identity.inode == st.st_ino
        assert identity.canonical_path == target

    def test_frozen(self, target: Path) -> None:
        """Test that the identity cannot be mutated."""
        identity = TargetIdentity.from_path(target)

        with pytest.raises(FrozenInstanceError):
            identity.inode = 0  # type: ignore[misc]


class TestHardLinkMatch:
    """Tests for the hard link predicate."""

    def test_other_link_matches(self, target: Path) -> None:
        """Test that another hard link to the target matches."""
        identity = TargetIdentity.from_path(target)
        copy = target.parent / "copy.bin"

        assert identity.is_hard_link_match(copy.lstat(), copy)

    def test_target_path_never_matches(self, target: Path) -> None:
        """Test that the canonical path itself is excluded."""
        identity = TargetIdentity.from_path(target)

        assert not identity.is_hard_link_match(target.lstat(), target)

    def test_different_inode_does_not_match(self, target: Path) -> None:
        """Test that an unrelated file does not match."""
        other = target.parent / "other.bin"
        other.write_bytes(b"data")
        identity = TargetIdentity.from_path(target)

        assert not identity.is_hard_link_match(other.lstat(), other)

    def test_different_device_does_not_match(self, target: Path) -> None:
        """Test that the same inode number on another device does not match."""
        st = target.lstat()
        identity = TargetIdentity(device=st.st_dev + 1, inode=st.st_ino, canonical_path=target)
        copy = target.parent / "copy.bin"

        assert not identity.is_hard_link_match(copy.lstat(), copy)

    def test_directory_does_not_match(self, tmp_path: Path) -> None:
        """Test that non-regular entries never match."""
        st = tmp_path.lstat()
        identity = TargetIdentity(device=st.st_dev, inode=st.st_ino, canonical_path=tmp_path / "x")

        assert not identity.is_hard_link_match(st, tmp_path)


class TestSoftLinkMatch:
    """Tests for the symbolic link predicate."""

    def test_equal_path_matches(self, target: Path) -> None:
        identity = TargetIdentity.from_path(target)
        assert identity.is_soft_link_match(Path(str(target)))

    def test_other_path_does_not_match(self, target: Path) -> None:
        identity = TargetIdentity.from_path(target)
        assert not identity.is_soft_link_match(target.parent / "copy.bin")
