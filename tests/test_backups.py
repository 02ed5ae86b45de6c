"""Tests for the backup index."""
import json

import pytest

from schemagen.errors import BackupError
from schemagen.persistence.backups import Backup, BackupIndex
from schemagen.persistence.meta_store import MetaRow


def _make_backup(record_id=42, timestamp="2024-05-01T00:00:00+00:00", value="a:0:{}"):
    rows = [MetaRow(7, record_id, "rank_math_schema_Service", value)]
    return Backup(record_id=record_id, timestamp=timestamp, rows=rows)


class TestMemoryIndex:
    def test_latest_is_newest(self):
        index = BackupIndex(storage_key="k")
        index.save(_make_backup(timestamp="2024-01-01"))
        newest = index.save(_make_backup(timestamp="2024-02-01"))
        assert index.latest(42) is newest

    def test_per_record_history_is_bounded(self):
        index = BackupIndex(storage_key="k", per_record=2)
        for day in range(1, 6):
            index.save(_make_backup(timestamp=f"2024-01-0{day}"))
        assert len(index._memory[42]) == 2
        assert index.latest(42).timestamp == "2024-01-05"

    def test_unknown_record(self):
        assert BackupIndex(storage_key="k").latest(99) is None

    def test_list_newest_per_record(self):
        index = BackupIndex(storage_key="k")
        index.save(_make_backup(record_id=1))
        index.save(_make_backup(record_id=2))
        summaries = index.list()
        assert sorted(s["recordId"] for s in summaries) == [1, 2]
        assert summaries[0]["schemaCount"] == 1


class TestDurableFile:
    def test_survives_restart(self, backups_file):
        BackupIndex(path=backups_file, storage_key="db1").save(_make_backup(value="a:1:{i:0;N;}"))
        restored = BackupIndex(path=backups_file, storage_key="db1").latest(42)
        assert restored is not None
        assert restored.rows[0].key == "rank_math_schema_Service"
        assert restored.rows[0].value == "a:1:{i:0;N;}"
        assert restored.rows[0].record_id == 42

    def test_scoped_by_storage_key(self, backups_file):
        BackupIndex(path=backups_file, storage_key="db1").save(_make_backup())
        assert BackupIndex(path=backups_file, storage_key="db2").latest(42) is None
        with open(backups_file, encoding="utf-8") as handle:
            assert list(json.load(handle)) == ["db1"]

    def test_capped_oldest_first(self, backups_file):
        index = BackupIndex(path=backups_file, storage_key="db1", max_backups=3)
        for day in range(1, 6):
            index.save(_make_backup(timestamp=f"2024-01-0{day}"))
        with open(backups_file, encoding="utf-8") as handle:
            entries = json.load(handle)["db1"]
        assert [e["timestamp"] for e in entries] == ["2024-01-03", "2024-01-04", "2024-01-05"]

    def test_newest_from_file(self, backups_file):
        writer = BackupIndex(path=backups_file, storage_key="db1")
        writer.save(_make_backup(timestamp="2024-03-01", value="new"))
        writer.save(_make_backup(timestamp="2024-01-01", value="old"))
        reader = BackupIndex(path=backups_file, storage_key="db1")
        assert reader.latest(42).rows[0].value == "new"
        assert [s["recordId"] for s in reader.list()] == [42]

    def test_failed_write_raises_and_keeps_memory_clean(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        index = BackupIndex(path=str(blocker / "backups.json"), storage_key="db1")
        with pytest.raises(BackupError):
            index.save(_make_backup())
        assert index.latest(42) is None

    def test_corrupt_file_reads_as_empty(self, backups_file):
        with open(backups_file, "w", encoding="utf-8") as handle:
            handle.write("{not json")
        index = BackupIndex(path=backups_file, storage_key="db1")
        assert index.latest(42) is None
        index.save(_make_backup())
        assert BackupIndex(path=backups_file, storage_key="db1").latest(42) is not None


class TestBackupSerialization:
    def test_round_trip(self):
        backup = _make_backup()
        again = Backup.from_dict(backup.to_dict())
        assert again.backup_id == backup.backup_id
        assert again.rows == backup.rows
