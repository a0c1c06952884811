"""Tests for the diff service."""

from __future__ import annotations

import json

import pytest

from cdnsync.exceptions import ManifestUnavailable
from cdnsync.services.diff_service import (
    ChangeSet,
    FileEntry,
    compute_change_set,
    parse_manifest,
)


def _manifest(entries: dict[str, str]) -> dict[str, FileEntry]:
    return {p: FileEntry(file_path=p, content_hash=h) for p, h in entries.items()}


class TestComputeChangeSet:
    def test_upload_and_delete_scenario(self) -> None:
        source = _manifest({"a": "h1", "b": "h2"})
        mirror = _manifest({"b": "h2", "c": "h3"})
        change_set = compute_change_set(source, mirror)
        assert change_set.to_upload == [FileEntry("a", "h1")]
        assert change_set.to_delete == [FileEntry("c", "h3")]

    def test_changed_hash_is_uploaded(self) -> None:
        change_set = compute_change_set(_manifest({"a": "new"}), _manifest({"a": "old"}))
        assert change_set.to_upload == [FileEntry("a", "new")]
        assert change_set.to_delete == []

    def test_equal_manifests_produce_no_changes(self) -> None:
        manifest = _manifest({"a": "h1", "dir/b": "h2"})
        change_set = compute_change_set(manifest, dict(manifest))
        assert change_set.is_empty

    def test_both_empty(self) -> None:
        assert compute_change_set({}, {}).is_empty

    def test_control_file_is_never_deleted(self) -> None:
        mirror = _manifest({"kushn_result.json": "m", "stale.txt": "s"})
        change_set = compute_change_set({}, mirror)
        assert [e.file_path for e in change_set.to_delete] == ["stale.txt"]

    def test_custom_control_file(self) -> None:
        mirror = _manifest({"manifest.json": "m", "kushn_result.json": "k"})
        change_set = compute_change_set({}, mirror, control_file="manifest.json")
        assert [e.file_path for e in change_set.to_delete] == ["kushn_result.json"]

    def test_control_file_is_uploaded_when_changed(self) -> None:
        change_set = compute_change_set(
            _manifest({"kushn_result.json": "new"}),
            _manifest({"kushn_result.json": "old"}),
        )
        assert [e.file_path for e in change_set.to_upload] == ["kushn_result.json"]

    def test_hash_comparison_is_exact(self) -> None:
        change_set = compute_change_set(_manifest({"a": "ABC"}), _manifest({"a": "abc"}))
        assert len(change_set.to_upload) == 1

    def test_results_are_sorted(self) -> None:
        change_set = compute_change_set(_manifest({"z": "1", "a": "1", "m": "1"}), {})
        assert [e.file_path for e in change_set.to_upload] == ["a", "m", "z"]


class TestChangeSet:
    def test_is_empty(self) -> None:
        assert ChangeSet().is_empty
        assert not ChangeSet(to_delete=[FileEntry("a", "h")]).is_empty


class TestParseManifest:
    def test_parses_path_hash_records(self) -> None:
        raw = json.dumps([{"path": "a.txt", "hash": "h1"}, {"path": "b/c.txt", "hash": "h2"}])
        manifest = parse_manifest(raw.encode())
        assert manifest == {
            "a.txt": FileEntry("a.txt", "h1"),
            "b/c.txt": FileEntry("b/c.txt", "h2"),
        }

    def test_extra_fields_are_ignored(self) -> None:
        raw = '[{"path": "a", "hash": "h", "size": 3}]'
        assert parse_manifest(raw) == {"a": FileEntry("a", "h")}

    def test_duplicate_path_keeps_last_hash(self) -> None:
        raw = '[{"path": "a", "hash": "h1"}, {"path": "a", "hash": "h2"}]'
        assert parse_manifest(raw) == {"a": FileEntry("a", "h2")}

    def test_empty_list(self) -> None:
        assert parse_manifest(b"[]") == {}

    @pytest.mark.parametrize(
        "raw",
        [b"", b"not json", b'{"message": "404 File Not Found"}', b'[{"path": "a"}]'],
    )
    def test_malformed_manifest_raises(self, raw: bytes) -> None:
        with pytest.raises(ManifestUnavailable, match="Malformed manifest"):
            parse_manifest(raw)
