"""
Safe Mutation Store for Rank Math schema rows.

SAFETY:
- Dry-run is the default for every destructive operation (commit=False)
- A backup of every schema row for the record is taken before a commit
  when backup=True; if the backup cannot be persisted the write is not issued
- Rollback restores the record's full prior row set from the latest backup
- Store errors are reported with the store's own message, never masked

Concurrency: no cross-request locking. Two concurrent commits against the
same record race and the last write wins at the store. Callers that need
strict ordering must allow one in-flight mutation per record.
"""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from schemagen.errors import (
    BackupNotFoundError,
    RecordNotFoundError,
    SchemaValidationError,
    StoreError,
)
from schemagen.generators.validation import GraphValidator
from schemagen.models.schema import SCHEMA_CONTEXT, SchemaGraph
from schemagen.persistence.backups import Backup, BackupIndex, utc_timestamp
from schemagen.persistence.diff import compare_schemas
from schemagen.persistence.meta_store import MetaRow, MetaStore, RecordInfo
from schemagen.persistence.rankmath import (
    RICH_SNIPPET_KEY,
    SCHEMA_PREFIX,
    encode_row,
    meta_key,
    rich_snippet_type,
    schema_type_of,
)
from schemagen.utils.logger import LayerLogger

# Types that are usually bare references in a graph; skipped when they carry <= 3 keys
REFERENCE_ONLY_TYPES = frozenset({"WebSite", "Organization", "Place", "ImageObject"})
REFERENCE_ONLY_MAX_KEYS = 3

# First entity of one of these types becomes the primary schema
PREFERRED_PRIMARY_TYPES = ("Service", "Article", "BlogPosting", "NewsArticle", "Product")

EntityLike = Union[Dict[str, Any], Any]
GraphLike = Union[SchemaGraph, Dict[str, Any], List[Dict[str, Any]]]


class Action(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


def _camel(data: Dict[str, Any]) -> Dict[str, Any]:
    out = {}
    for key, value in data.items():
        head, *rest = key.split("_")
        out[head + "".join(part.title() for part in rest)] = value.value if isinstance(value, Enum) else value
    return out


@dataclass
class PreviewResult:
    """Read-only description of what a write would do."""
    record_id: int
    record_title: str
    schema_type: str
    meta_key: str
    action: Action
    existing_meta_id: Optional[int] = None
    value_length: int = 0
    existing_value_length: int = 0
    simulated: bool = True

    @property
    def message(self) -> str:
        if self.action == Action.UPDATE:
            return f"Would UPDATE existing meta (ID: {self.existing_meta_id})"
        return "Would INSERT new meta row"

    def to_dict(self) -> Dict[str, Any]:
        data = _camel(asdict(self))
        data["message"] = self.message
        return data


@dataclass
class MutationResult:
    """Outcome of one row write (or simulated write)."""
    success: bool
    record_id: int
    schema_type: str
    meta_key: str
    action: Action
    simulated: bool
    meta_id: Optional[int] = None
    is_primary: bool = False
    can_rollback: bool = False
    backup_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def message(self) -> str:
        if self.error:
            return self.error
        verb = self.action.value
        if self.simulated:
            return f"[DRY-RUN] Would {verb} {self.schema_type} schema ({self.meta_key}) - pass commit to execute"
        return f"{verb} {self.schema_type} schema (meta ID: {self.meta_id})"

    def to_dict(self) -> Dict[str, Any]:
        data = _camel(asdict(self))
        data["message"] = self.message
        return data


@dataclass
class ReplaceAllResult:
    success: bool
    record_id: int
    simulated: bool
    primary_type: Optional[str] = None
    results: List[MutationResult] = field(default_factory=list)
    deleted: List[MutationResult] = field(default_factory=list)
    skipped: List[Dict[str, str]] = field(default_factory=list)
    rich_snippet: Optional[MutationResult] = None
    diff: Optional[Dict[str, Any]] = None
    can_rollback: bool = False
    backup_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "recordId": self.record_id,
            "simulated": self.simulated,
            "primaryType": self.primary_type,
            "results": [r.to_dict() for r in self.results],
            "deleted": [r.to_dict() for r in self.deleted],
            "skipped": self.skipped,
            "richSnippet": self.rich_snippet.to_dict() if self.rich_snippet else None,
            "diff": self.diff,
            "canRollback": self.can_rollback,
            "backupId": self.backup_id,
        }


@dataclass
class RollbackResult:
    record_id: int
    restored: int
    removed: int
    backup_id: str
    backup_timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        data = _camel(asdict(self))
        data["message"] = "Rolled back to previous state"
        return data


@dataclass
class DeleteAllResult:
    record_id: int
    simulated: bool
    meta_keys: List[str] = field(default_factory=list)
    deleted: int = 0
    can_rollback: bool = False
    backup_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = _camel(asdict(self))
        if self.simulated:
            data["message"] = f"[DRY-RUN] Would delete {len(self.meta_keys)} schema(s)"
        else:
            data["message"] = f"Deleted {self.deleted} schema(s)"
        return data


def _as_dict(entity: EntityLike) -> Dict[str, Any]:
    if hasattr(entity, "to_jsonld"):
        return entity.to_jsonld()
    if isinstance(entity, dict):
        return entity
    raise TypeError(f"Expected a schema entity or dict, got {type(entity).__name__}")


def graph_document(graph: GraphLike) -> Dict[str, Any]:
    if isinstance(graph, SchemaGraph):
        return graph.to_jsonld()
    if isinstance(graph, list):
        return {"@context": SCHEMA_CONTEXT, "@graph": [_as_dict(e) for e in graph]}
    if isinstance(graph, dict) and "@graph" not in graph:
        return {"@context": graph.get("@context", SCHEMA_CONTEXT), "@graph": [graph]}
    return graph


def is_reference_only(entity: Dict[str, Any]) -> bool:
    """WebSite/Organization/Place/ImageObject entities with <= 3 keys carry nothing worth storing."""
    return schema_type_of(entity) in REFERENCE_ONLY_TYPES and len(entity) <= REFERENCE_ONLY_MAX_KEYS


def choose_primary(entities: Sequence[Dict[str, Any]], primary_type: Optional[str] = None) -> int:
    """Index of the primary entity: explicit type, else first preferred type, else 0."""
    types = [schema_type_of(e) for e in entities]
    if primary_type and primary_type in types:
        return types.index(primary_type)
    for index, schema_type in enumerate(types):
        if schema_type in PREFERRED_PRIMARY_TYPES:
            return index
    return 0


def split_graph(
    document: Dict[str, Any],
    primary_type: Optional[str] = None,
) -> Tuple[List[Dict[str, Any]], List[Dict[str, str]]]:
    """
    Entities worth one row each, primary first, plus the skipped ones.

    Reference-only entities and later entities repeating a type are skipped.
    """
    entities: List[Dict[str, Any]] = []
    skipped: List[Dict[str, str]] = []
    seen_types = set()
    for entity in document.get("@graph", []):
        schema_type = schema_type_of(entity)
        if is_reference_only(entity):
            skipped.append({"type": schema_type, "reason": "reference-only"})
            continue
        if schema_type in seen_types:
            skipped.append({"type": schema_type, "reason": "duplicate type"})
            continue
        seen_types.add(schema_type)
        entities.append({k: v for k, v in entity.items() if k != "@context"})

    if entities:
        entities.insert(0, entities.pop(choose_primary(entities, primary_type)))
    return entities, skipped


class SafeMutationStore:
    """
    Preview / execute / backup / rollback protocol over a MetaStore.

    Args:
        store: External record store backend
        backups: Backup index (in-memory only when not given)
        validator: Graph validator used by execute and replace_all
    """

    def __init__(
        self,
        store: MetaStore,
        backups: Optional[BackupIndex] = None,
        validator: Optional[GraphValidator] = None,
    ):
        self.store = store
        self.backups = backups or BackupIndex()
        self.validator = validator or GraphValidator()
        self.logger = LayerLogger("mutation_store")

    def _require_record(self, record_id: int) -> RecordInfo:
        record = self.store.find_record(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    def _snapshot_rows(self, record_id: int) -> List[MetaRow]:
        rows = list(self.store.list_meta(record_id, SCHEMA_PREFIX))
        snippet = self.store.get_meta(record_id, RICH_SNIPPET_KEY)
        if snippet is not None:
            rows.append(snippet)
        return sorted(rows, key=lambda r: r.meta_id)

    # -------------------------------------------------------------------------
    # Single-row protocol
    # -------------------------------------------------------------------------

    def preview(
        self,
        record_id: int,
        entity: EntityLike,
        schema_type: Optional[str] = None,
        is_primary: bool = False,
    ) -> PreviewResult:
        """Look up what a write of this entity would do. Never mutates."""
        record = self._require_record(record_id)
        data = _as_dict(entity)
        schema_type = schema_type or schema_type_of(data)
        key = meta_key(schema_type)
        existing = self.store.get_meta(record_id, key)
        value = encode_row(data, schema_type, is_primary)

        return PreviewResult(
            record_id=record_id,
            record_title=record.title,
            schema_type=schema_type,
            meta_key=key,
            action=Action.UPDATE if existing else Action.INSERT,
            existing_meta_id=existing.meta_id if existing else None,
            value_length=len(value.encode("utf-8")),
            existing_value_length=len(existing.value.encode("utf-8")) if existing else 0,
        )

    def execute(
        self,
        record_id: int,
        entity: EntityLike,
        schema_type: Optional[str] = None,
        commit: bool = False,
        backup: bool = True,
        is_primary: bool = False,
    ) -> MutationResult:
        """
        Write one schema row.

        With commit=False this is preview() reported as a simulated result.
        With commit=True exactly one INSERT or UPDATE is issued, chosen by the
        lookup made here. A failed write returns success=False with the
        store's message; a backup taken beforehand stays usable.

        Raises:
            RecordNotFoundError: no such record
            SchemaValidationError: commit of an entity missing required fields
            BackupError: backup requested but could not be persisted (nothing written)
        """
        preview = self.preview(record_id, entity, schema_type, is_primary)
        if not commit:
            return MutationResult(
                success=True,
                record_id=record_id,
                schema_type=preview.schema_type,
                meta_key=preview.meta_key,
                action=preview.action,
                simulated=True,
                meta_id=preview.existing_meta_id,
                is_primary=is_primary,
            )

        report = self.validator.validate_entity(_as_dict(entity))
        if not report.valid:
            self.logger.log_validation(
                errors=len(report.errors),
                warnings=len(report.warnings),
                schema_types=[preview.schema_type],
                record_id=record_id,
            )
            raise SchemaValidationError(report)

        taken = self.backup(record_id) if backup else None
        return self._write(
            record_id,
            _as_dict(entity),
            preview.schema_type,
            preview.existing_meta_id,
            is_primary,
            taken,
        )

    def _write(
        self,
        record_id: int,
        data: Dict[str, Any],
        schema_type: str,
        existing_meta_id: Optional[int],
        is_primary: bool,
        taken: Optional[Backup],
    ) -> MutationResult:
        key = meta_key(schema_type)
        action = Action.UPDATE if existing_meta_id is not None else Action.INSERT
        result = MutationResult(
            success=False,
            record_id=record_id,
            schema_type=schema_type,
            meta_key=key,
            action=action,
            simulated=False,
            is_primary=is_primary,
            can_rollback=taken is not None,
            backup_id=taken.backup_id if taken else None,
        )

        value = encode_row(data, schema_type, is_primary)
        try:
            if existing_meta_id is not None:
                self.store.update_meta(existing_meta_id, value)
                result.meta_id = existing_meta_id
            else:
                result.meta_id = self.store.insert_meta(record_id, key, value)
        except StoreError as e:
            result.error = str(e)
            self.logger.log_error(str(e), error_type="store_write_failed", record_id=record_id, meta_key=key)
            return result

        result.success = True
        self.logger.log_mutation(action.value, record_id, key, simulated=False, meta_id=result.meta_id)
        return result

    # -------------------------------------------------------------------------
    # Backup / rollback
    # -------------------------------------------------------------------------

    def backup(self, record_id: int) -> Backup:
        """
        Snapshot every schema row (and the rich-snippet type) of a record.

        Raises:
            RecordNotFoundError: no such record
            BackupError: the backup could not be persisted
        """
        self._require_record(record_id)
        snapshot = Backup(record_id=record_id, timestamp=utc_timestamp(), rows=self._snapshot_rows(record_id))
        return self.backups.save(snapshot)

    def rollback(self, record_id: int) -> RollbackResult:
        """
        Replace the record's current schema rows with the latest backup.

        The backup stays available afterwards.

        Raises:
            BackupNotFoundError: no backup for this record (memory or file)
        """
        snapshot = self.backups.latest(record_id)
        if snapshot is None:
            raise BackupNotFoundError(record_id)

        removed = self.store.delete_meta_prefix(record_id, SCHEMA_PREFIX)
        snippet = self.store.get_meta(record_id, RICH_SNIPPET_KEY)
        if snippet is not None:
            self.store.delete_meta(snippet.meta_id)
            removed += 1

        for row in snapshot.rows:
            self.store.insert_meta(record_id, row.key, row.value)

        self.logger.log_mutation(
            "ROLLBACK",
            record_id,
            None,
            simulated=False,
            restored=len(snapshot.rows),
            removed=removed,
            backup_id=snapshot.backup_id,
        )
        return RollbackResult(
            record_id=record_id,
            restored=len(snapshot.rows),
            removed=removed,
            backup_id=snapshot.backup_id,
            backup_timestamp=snapshot.timestamp,
        )

    def list_backups(self) -> List[Dict[str, Any]]:
        return self.backups.list()

    # -------------------------------------------------------------------------
    # Whole-graph operations
    # -------------------------------------------------------------------------

    def replace_all(
        self,
        record_id: int,
        graph: GraphLike,
        commit: bool = False,
        backup: bool = True,
        primary_type: Optional[str] = None,
    ) -> ReplaceAllResult:
        """
        Store a graph as one row per entity, replacing the record's schema rows.

        - Reference-only entities (<= 3 keys of WebSite/Organization/Place/
          ImageObject) are skipped, as are later entities repeating a type
        - The primary entity is written first and flagged isPrimary
        - Stored schema types absent from the new graph are deleted
        - On commit the rich-snippet type follows the primary schema

        Each row reports its own outcome; success requires all of them.

        Raises:
            SchemaValidationError: the graph has required-field errors
            RecordNotFoundError: no such record
            BackupError: backup requested but could not be persisted (nothing written)
        """
        document = graph_document(graph)
        report = self.validator.validate(document)
        if not report.valid:
            raise SchemaValidationError(report)
        self._require_record(record_id)

        entities, skipped = split_graph(document, primary_type)
        primary = schema_type_of(entities[0]) if entities else None

        existing = {row.key: row for row in self.store.list_meta(record_id, SCHEMA_PREFIX)}
        new_keys = {meta_key(schema_type_of(e)) for e in entities}
        stale = [row for key, row in existing.items() if key not in new_keys]

        result = ReplaceAllResult(
            success=True,
            record_id=record_id,
            simulated=not commit,
            primary_type=primary,
            skipped=skipped,
        )

        if not commit:
            for index, entity in enumerate(entities):
                schema_type = schema_type_of(entity)
                row = existing.get(meta_key(schema_type))
                result.results.append(MutationResult(
                    success=True,
                    record_id=record_id,
                    schema_type=schema_type,
                    meta_key=meta_key(schema_type),
                    action=Action.UPDATE if row else Action.INSERT,
                    simulated=True,
                    meta_id=row.meta_id if row else None,
                    is_primary=index == 0,
                ))
            result.deleted = [self._delete_result(record_id, row, simulated=True) for row in stale]
            result.diff = compare_schemas(list(existing.values()), entities)
            self.logger.log_mutation("REPLACE_ALL", record_id, None, simulated=True, rows=len(entities), stale=len(stale))
            return result

        taken = self.backup(record_id) if backup else None
        result.can_rollback = taken is not None
        result.backup_id = taken.backup_id if taken else None

        for index, entity in enumerate(entities):
            schema_type = schema_type_of(entity)
            row = existing.get(meta_key(schema_type))
            result.results.append(self._write(
                record_id,
                entity,
                schema_type,
                row.meta_id if row else None,
                index == 0,
                taken,
            ))

        for row in stale:
            deleted = self._delete_result(record_id, row, simulated=False)
            try:
                self.store.delete_meta(row.meta_id)
                self.logger.log_mutation("DELETE", record_id, row.key, simulated=False, meta_id=row.meta_id)
            except StoreError as e:
                deleted.success = False
                deleted.error = str(e)
                self.logger.log_error(str(e), error_type="store_delete_failed", record_id=record_id, meta_key=row.key)
            result.deleted.append(deleted)

        snippet = rich_snippet_type(primary) if primary else None
        if snippet and result.results and result.results[0].success:
            try:
                result.rich_snippet = self.set_rich_snippet_type(record_id, snippet, commit=True)
            except StoreError as e:
                result.rich_snippet = MutationResult(
                    success=False,
                    record_id=record_id,
                    schema_type=primary,
                    meta_key=RICH_SNIPPET_KEY,
                    action=Action.UPDATE,
                    simulated=False,
                    error=str(e),
                )

        result.success = all(r.success for r in result.results + result.deleted) and (
            result.rich_snippet is None or result.rich_snippet.success
        )
        self.logger.log_action(
            "replace_all",
            "completed" if result.success else "failed",
            record_id=record_id,
            rows=len(result.results),
            deleted=len(result.deleted),
            skipped=len(skipped),
        )
        return result

    def _delete_result(self, record_id: int, row: MetaRow, simulated: bool) -> MutationResult:
        return MutationResult(
            success=True,
            record_id=record_id,
            schema_type=row.key[len(SCHEMA_PREFIX):],
            meta_key=row.key,
            action=Action.DELETE,
            simulated=simulated,
            meta_id=row.meta_id,
        )

    def set_rich_snippet_type(self, record_id: int, snippet_type: str, commit: bool = False) -> MutationResult:
        """Set rank_math_rich_snippet (dry-run unless commit=True)."""
        self._require_record(record_id)
        existing = self.store.get_meta(record_id, RICH_SNIPPET_KEY)
        result = MutationResult(
            success=True,
            record_id=record_id,
            schema_type=snippet_type,
            meta_key=RICH_SNIPPET_KEY,
            action=Action.UPDATE if existing else Action.INSERT,
            simulated=not commit,
            meta_id=existing.meta_id if existing else None,
        )
        if not commit:
            return result

        if existing is not None:
            self.store.update_meta(existing.meta_id, snippet_type)
        else:
            result.meta_id = self.store.insert_meta(record_id, RICH_SNIPPET_KEY, snippet_type)
        self.logger.log_mutation(result.action.value, record_id, RICH_SNIPPET_KEY, simulated=False, value=snippet_type)
        return result

    def delete_all(self, record_id: int, commit: bool = False, backup: bool = True) -> DeleteAllResult:
        """
        Remove every schema row of a record (dry-run unless commit=True).

        Raises:
            RecordNotFoundError: no such record
            BackupError: backup requested but could not be persisted (nothing deleted)
        """
        self._require_record(record_id)
        rows = self.store.list_meta(record_id, SCHEMA_PREFIX)
        result = DeleteAllResult(record_id=record_id, simulated=not commit, meta_keys=[r.key for r in rows])
        if not commit:
            return result

        taken = self.backup(record_id) if backup else None
        result.can_rollback = taken is not None
        result.backup_id = taken.backup_id if taken else None
        result.deleted = self.store.delete_meta_prefix(record_id, SCHEMA_PREFIX)
        self.logger.log_mutation("DELETE_ALL", record_id, None, simulated=False, deleted=result.deleted)
        return result
