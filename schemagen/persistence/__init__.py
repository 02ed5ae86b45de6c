"""Rank Math postmeta persistence: codec, stores, backups and the safe mutation protocol."""
from schemagen.persistence.backups import Backup, BackupIndex
from schemagen.persistence.meta_store import InMemoryMetaStore, MetaRow, MetaStore, RecordInfo, SQLMetaStore
from schemagen.persistence.mutation import (
    Action,
    DeleteAllResult,
    MutationResult,
    PreviewResult,
    ReplaceAllResult,
    RollbackResult,
    SafeMutationStore,
)
from schemagen.persistence.php_serialize import php_serialize, php_unserialize

__all__ = [
    "Action",
    "Backup",
    "BackupIndex",
    "DeleteAllResult",
    "InMemoryMetaStore",
    "MetaRow",
    "MetaStore",
    "MutationResult",
    "PreviewResult",
    "RecordInfo",
    "ReplaceAllResult",
    "RollbackResult",
    "SQLMetaStore",
    "SafeMutationStore",
    "php_serialize",
    "php_unserialize",
]
