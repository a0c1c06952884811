"""Tests for the entity-scoped staging area."""

from __future__ import annotations

import stat
from typing import TYPE_CHECKING

import pytest

from cdnsync.exceptions import StagingIOError
from cdnsync.filesystem.staging import StagingArea

if TYPE_CHECKING:
    from pathlib import Path


class TestStagingArea:
    def test_created_lazily(self, tmp_path: Path) -> None:
        staging = StagingArea(tmp_path, "site")
        assert not staging.exists
        staging.write("a.txt", b"envelope")
        assert staging.exists

    def test_write_read_remove(self, tmp_path: Path) -> None:
        staging = StagingArea(tmp_path, "site")
        handle = staging.write("dir/a.txt", b"envelope")
        assert handle == (tmp_path / "site" / "dir" / "a.txt").resolve()
        assert staging.read(handle) == b"envelope"
        staging.remove(handle)
        assert not handle.exists()

    def test_remove_missing_is_noop(self, tmp_path: Path) -> None:
        staging = StagingArea(tmp_path, "site")
        staging.remove(tmp_path / "site" / "nothing")

    def test_owner_only_permissions(self, tmp_path: Path) -> None:
        handle = StagingArea(tmp_path, "site").write("a.txt", b"x")
        assert stat.S_IMODE(handle.stat().st_mode) == 0o600

    def test_remove_scope(self, tmp_path: Path) -> None:
        staging = StagingArea(tmp_path, "site")
        staging.write("a/b/c.txt", b"x")
        staging.remove_scope()
        assert not (tmp_path / "site").exists()

    def test_remove_scope_without_writes(self, tmp_path: Path) -> None:
        StagingArea(tmp_path, "site").remove_scope()
        assert not (tmp_path / "site").exists()

    def test_scopes_are_isolated(self, tmp_path: Path) -> None:
        first = StagingArea(tmp_path, "one")
        second = StagingArea(tmp_path, "two")
        first.write("a.txt", b"1")
        handle = second.write("a.txt", b"2")
        first.remove_scope()
        assert second.read(handle) == b"2"

    @pytest.mark.parametrize("file_path", ["../escape.txt", "a/../../escape.txt", ""])
    def test_rejects_paths_outside_scope(self, tmp_path: Path, file_path: str) -> None:
        with pytest.raises(StagingIOError, match="escapes scope"):
            StagingArea(tmp_path, "site").write(file_path, b"x")
        assert not (tmp_path / "escape.txt").exists()

    @pytest.mark.parametrize("name", ["", ".", "..", "a/b"])
    def test_rejects_bad_scope_names(self, tmp_path: Path, name: str) -> None:
        with pytest.raises(StagingIOError, match="Invalid staging scope"):
            StagingArea(tmp_path, name)

    def test_write_failure_is_staging_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "site"
        blocker.write_text("not a directory")
        with pytest.raises(StagingIOError, match="Failed to stage"):
            StagingArea(tmp_path, "site").write("a.txt", b"x")
