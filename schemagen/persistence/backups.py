"""
Backup index for the safe mutation store.

Backups are kept twice: a bounded per-record in-memory history and a
durable JSON file scoped by storage key (one key per database). The file
is rewritten atomically and capped at MAX_BACKUPS entries per storage key,
oldest pruned first. A failed durable write raises BackupError so the
destructive write that asked for the backup is never issued.
"""
import json
import os
import tempfile
import threading
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

from schemagen.config import config
from schemagen.errors import BackupError
from schemagen.persistence.meta_store import MetaRow
from schemagen.utils.logger import LayerLogger


@dataclass
class Backup:
    """Full snapshot of a record's schema rows at one point in time."""
    record_id: int
    timestamp: str
    rows: List[MetaRow] = field(default_factory=list)
    backup_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backupId": self.backup_id,
            "recordId": self.record_id,
            "timestamp": self.timestamp,
            "rows": [
                {"metaId": r.meta_id, "key": r.key, "value": r.value}
                for r in self.rows
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Backup":
        record_id = int(data["recordId"])
        return cls(
            record_id=record_id,
            timestamp=data["timestamp"],
            rows=[
                MetaRow(int(r.get("metaId") or 0), record_id, r["key"], r["value"])
                for r in data.get("rows", [])
            ],
            backup_id=data.get("backupId") or uuid.uuid4().hex[:12],
        )

    def summary(self) -> Dict[str, Any]:
        return {
            "backupId": self.backup_id,
            "recordId": self.record_id,
            "timestamp": self.timestamp,
            "schemaCount": len(self.rows),
        }


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class BackupIndex:
    """
    Thread-safe backup history.

    Args:
        path: Durable JSON file (None keeps backups in memory only)
        storage_key: Scope inside the file, one per database
        per_record: In-memory history length per record
        max_backups: Durable cap per storage key
    """

    def __init__(
        self,
        path: Optional[str] = None,
        storage_key: Optional[str] = None,
        per_record: Optional[int] = None,
        max_backups: Optional[int] = None,
    ):
        self.path = path
        self.storage_key = storage_key or config.backup_storage_key()
        self.per_record = per_record or config.BACKUPS_PER_RECORD
        self.max_backups = max_backups or config.MAX_BACKUPS
        self._lock = threading.Lock()
        self._memory: Dict[int, Deque[Backup]] = {}
        self.logger = LayerLogger("backups")

    @classmethod
    def from_config(cls) -> "BackupIndex":
        return cls(path=config.BACKUPS_FILE)

    # -------------------------------------------------------------------------
    # Durable file
    # -------------------------------------------------------------------------

    def _read_file(self) -> Dict[str, Any]:
        if not self.path or not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as e:
            self.logger.log_fallback(
                from_source="backups_file",
                to_source="empty_index",
                reason=str(e),
                path=self.path,
            )
            return {}
        return data if isinstance(data, dict) else {}

    def _write_file(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".backups-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _durable_entries(self, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        entries = data.get(self.storage_key)
        return entries if isinstance(entries, list) else []

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def save(self, backup: Backup) -> Backup:
        """
        Record a backup in memory and, when a path is set, on disk.

        Raises:
            BackupError: the durable write failed (memory is left untouched)
        """
        with self._lock:
            if self.path:
                try:
                    data = self._read_file()
                    entries = self._durable_entries(data)
                    entries.append(backup.to_dict())
                    if len(entries) > self.max_backups:
                        entries.sort(key=lambda e: e.get("timestamp", ""))
                        entries = entries[-self.max_backups:]
                    data[self.storage_key] = entries
                    self._write_file(data)
                except (OSError, TypeError, ValueError) as e:
                    self.logger.log_error(str(e), error_type="backup_write_failed", record_id=backup.record_id)
                    raise BackupError(f"Could not persist backup for post ID {backup.record_id}: {e}") from e

            history = self._memory.setdefault(backup.record_id, deque(maxlen=self.per_record))
            history.append(backup)

        self.logger.log_action(
            "backup",
            "completed",
            record_id=backup.record_id,
            backup_id=backup.backup_id,
            rows=len(backup.rows),
        )
        return backup

    def latest(self, record_id: int) -> Optional[Backup]:
        """Most recent backup for the record, in-memory first, then durable."""
        with self._lock:
            history = self._memory.get(record_id)
            if history:
                return history[-1]
            candidates = [
                e for e in self._durable_entries(self._read_file())
                if str(e.get("recordId")) == str(record_id)
            ]
        if not candidates:
            return None
        newest = max(candidates, key=lambda e: e.get("timestamp", ""))
        return Backup.from_dict(newest)

    def list(self) -> List[Dict[str, Any]]:
        """Summaries of the newest backup per record, in-memory entries first."""
        seen = set()
        summaries = []
        with self._lock:
            for record_id, history in self._memory.items():
                if history:
                    seen.add(record_id)
                    summaries.append(history[-1].summary())
            durable = self._durable_entries(self._read_file())

        newest: Dict[int, Dict[str, Any]] = {}
        for entry in durable:
            try:
                record_id = int(entry["recordId"])
            except (KeyError, TypeError, ValueError):
                continue
            if record_id in seen:
                continue
            if record_id not in newest or entry.get("timestamp", "") > newest[record_id].get("timestamp", ""):
                newest[record_id] = entry
        summaries.extend(Backup.from_dict(e).summary() for e in newest.values())
        return summaries
