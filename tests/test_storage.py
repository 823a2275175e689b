"""
Unit tests for JSON snapshot persistence.
"""

import json

import pytest

from airledger.core.storage import JsonSnapshotStore, SnapshotError


class TestJsonSnapshotStore:

    def test_missing_file_is_none(self, tmp_path):
        assert JsonSnapshotStore(tmp_path / "ledger.json").load() is None

    def test_save_creates_parents(self, tmp_path):
        store = JsonSnapshotStore(tmp_path / "a" / "b" / "ledger.json")
        assert store.save({"networks": {}})
        assert store.load() == {"networks": {}}

    def test_no_temp_files_left(self, tmp_path):
        store = JsonSnapshotStore(tmp_path / "ledger.json")
        store.save({"n": 1})
        store.save({"n": 2})
        assert [p.name for p in tmp_path.iterdir()] == ["ledger.json"]
        assert store.load() == {"n": 2}

    def test_unicode_preserved(self, tmp_path):
        store = JsonSnapshotStore(tmp_path / "ledger.json")
        store.save({"ssid": "Kawiarnia Żółw"})
        assert "Żółw" in store.path.read_text(encoding="utf-8")

    def test_unserialisable_returns_false(self, tmp_path):
        store = JsonSnapshotStore(tmp_path / "ledger.json")
        assert store.save({"bad": object()}) is False
        assert not store.path.exists()

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text("{truncated", encoding="utf-8")
        with pytest.raises(SnapshotError) as info:
            JsonSnapshotStore(path).load()
        assert info.value.path == str(path)

    def test_non_object_raises(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
        with pytest.raises(SnapshotError):
            JsonSnapshotStore(path).load()
