"""
Key/value meta store over WordPress posts + postmeta.

Two backends share the MetaStore protocol:

- InMemoryMetaStore: process-local rows, used by tests and dry runs
- SQLMetaStore: the real ``{prefix}posts`` / ``{prefix}postmeta`` tables
  through SQLAlchemy Core (MySQL via PyMySQL in production)

Store failures are raised as StoreError carrying the driver's own message.
"""
import re
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from sqlalchemy import (
    BigInteger,
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from schemagen.config import config
from schemagen.errors import StoreError
from schemagen.utils.logger import LayerLogger


@dataclass(frozen=True)
class MetaRow:
    meta_id: int
    record_id: int
    key: str
    value: str


@dataclass(frozen=True)
class RecordInfo:
    record_id: int
    title: str
    post_type: str = "post"
    status: str = "publish"
    slug: str = ""


class MetaStore(Protocol):
    """What the mutation store needs from the external record store."""

    def find_record(self, record_id: int) -> Optional[RecordInfo]: ...

    def find_record_by_slug(self, slug: str) -> Optional[RecordInfo]: ...

    def list_meta(self, record_id: int, prefix: str = "") -> List[MetaRow]: ...

    def get_meta(self, record_id: int, key: str) -> Optional[MetaRow]: ...

    def insert_meta(self, record_id: int, key: str, value: str) -> int: ...

    def update_meta(self, meta_id: int, value: str) -> None: ...

    def delete_meta(self, meta_id: int) -> None: ...

    def delete_meta_prefix(self, record_id: int, prefix: str) -> int: ...


class InMemoryMetaStore:
    """Dictionary-backed store with WordPress-like auto-increment meta ids."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[int, RecordInfo] = {}
        self._rows: Dict[int, MetaRow] = {}
        self._next_id = 1

    def add_record(
        self,
        record_id: int,
        title: str = "",
        post_type: str = "page",
        status: str = "publish",
        slug: str = "",
    ) -> RecordInfo:
        record = RecordInfo(record_id, title, post_type, status, slug)
        with self._lock:
            self._records[record_id] = record
        return record

    def find_record(self, record_id: int) -> Optional[RecordInfo]:
        return self._records.get(record_id)

    def find_record_by_slug(self, slug: str) -> Optional[RecordInfo]:
        for record in self._records.values():
            if record.slug == slug and record.status == "publish":
                return record
        return None

    def list_meta(self, record_id: int, prefix: str = "") -> List[MetaRow]:
        with self._lock:
            rows = [r for r in self._rows.values() if r.record_id == record_id and r.key.startswith(prefix)]
        return sorted(rows, key=lambda r: r.meta_id)

    def get_meta(self, record_id: int, key: str) -> Optional[MetaRow]:
        for row in self.list_meta(record_id):
            if row.key == key:
                return row
        return None

    def insert_meta(self, record_id: int, key: str, value: str) -> int:
        with self._lock:
            meta_id = self._next_id
            self._next_id += 1
            self._rows[meta_id] = MetaRow(meta_id, record_id, key, value)
        return meta_id

    def update_meta(self, meta_id: int, value: str) -> None:
        with self._lock:
            row = self._rows.get(meta_id)
            if row is None:
                raise StoreError(f"Meta ID {meta_id} not found")
            self._rows[meta_id] = MetaRow(row.meta_id, row.record_id, row.key, value)

    def delete_meta(self, meta_id: int) -> None:
        with self._lock:
            self._rows.pop(meta_id, None)

    def delete_meta_prefix(self, record_id: int, prefix: str) -> int:
        with self._lock:
            doomed = [i for i, r in self._rows.items() if r.record_id == record_id and r.key.startswith(prefix)]
            for meta_id in doomed:
                del self._rows[meta_id]
        return len(doomed)


def sanitize_prefix(prefix: str) -> str:
    """Table prefixes are interpolated into table names; keep [A-Za-z0-9_] only."""
    return re.sub(r"[^a-zA-Z0-9_]", "", prefix or "")


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLMetaStore:
    """
    WordPress tables through SQLAlchemy Core.

    Each operation runs in its own short transaction on a pooled
    connection; the store offers no cross-operation locking.
    """

    def __init__(self, engine: Engine, table_prefix: str = "wp_"):
        self.engine = engine
        self.logger = LayerLogger("meta_store")
        self.table_prefix = sanitize_prefix(table_prefix)
        if self.table_prefix != table_prefix:
            self.logger.log_decision(
                decision="prefix_sanitized",
                reason=f"Table prefix sanitized from {table_prefix!r} to {self.table_prefix!r}",
            )

        self.metadata = MetaData()
        id_type = BigInteger().with_variant(Integer, "sqlite")
        self.posts = Table(
            f"{self.table_prefix}posts",
            self.metadata,
            Column("ID", id_type, primary_key=True, autoincrement=True),
            Column("post_title", Text, nullable=False, default=""),
            Column("post_name", String(200), nullable=False, default=""),
            Column("post_type", String(20), nullable=False, default="post"),
            Column("post_status", String(20), nullable=False, default="publish"),
        )
        self.postmeta = Table(
            f"{self.table_prefix}postmeta",
            self.metadata,
            Column("meta_id", id_type, primary_key=True, autoincrement=True),
            Column("post_id", BigInteger, nullable=False, default=0, index=True),
            Column("meta_key", String(255), nullable=True, index=True),
            Column("meta_value", Text, nullable=True),
        )

    @classmethod
    def from_config(cls, engine: Optional[Engine] = None) -> "SQLMetaStore":
        """Build a pooled store from DATABASE_URL / DB_* settings."""
        if engine is None:
            url = config.database_url()
            if url is None:
                missing = ", ".join(config.get_missing_database_vars())
                raise StoreError(f"Database not configured (missing: {missing})")
            engine = create_engine(
                url,
                pool_size=config.DB_POOL_SIZE,
                pool_pre_ping=True,
                pool_recycle=3600,
            )
        return cls(engine, config.DB_TABLE_PREFIX)

    def create_tables(self) -> None:
        """Create both tables (local databases and tests only)."""
        try:
            self.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    def test_connection(self) -> Dict[str, str]:
        """Read-only check that the postmeta table is reachable."""
        try:
            with self.engine.connect() as conn:
                conn.execute(select(self.postmeta.c.meta_id).limit(1))
        except SQLAlchemyError as e:
            raise StoreError(f"Database connection failed: {e}") from e
        return {"status": "ok", "tablePrefix": self.table_prefix}

    def _record(self, row) -> RecordInfo:
        return RecordInfo(
            record_id=int(row.ID),
            title=row.post_title or "",
            post_type=row.post_type or "",
            status=row.post_status or "",
            slug=row.post_name or "",
        )

    def _meta(self, row) -> MetaRow:
        return MetaRow(int(row.meta_id), int(row.post_id), row.meta_key or "", row.meta_value or "")

    def add_record(
        self,
        record_id: int,
        title: str = "",
        post_type: str = "page",
        status: str = "publish",
        slug: str = "",
    ) -> RecordInfo:
        try:
            with self.engine.begin() as conn:
                conn.execute(insert(self.posts).values(
                    ID=record_id, post_title=title, post_name=slug,
                    post_type=post_type, post_status=status,
                ))
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return RecordInfo(record_id, title, post_type, status, slug)

    def find_record(self, record_id: int) -> Optional[RecordInfo]:
        stmt = select(self.posts).where(self.posts.c.ID == record_id)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).first()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return self._record(row) if row is not None else None

    def find_record_by_slug(self, slug: str) -> Optional[RecordInfo]:
        stmt = (
            select(self.posts)
            .where(self.posts.c.post_name == slug, self.posts.c.post_status == "publish")
            .order_by(self.posts.c.ID)
        )
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).first()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return self._record(row) if row is not None else None

    def list_meta(self, record_id: int, prefix: str = "") -> List[MetaRow]:
        stmt = select(self.postmeta).where(self.postmeta.c.post_id == record_id)
        if prefix:
            stmt = stmt.where(self.postmeta.c.meta_key.like(_escape_like(prefix) + "%", escape="\\"))
        stmt = stmt.order_by(self.postmeta.c.meta_id)
        try:
            with self.engine.connect() as conn:
                return [self._meta(r) for r in conn.execute(stmt)]
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    def get_meta(self, record_id: int, key: str) -> Optional[MetaRow]:
        stmt = (
            select(self.postmeta)
            .where(self.postmeta.c.post_id == record_id, self.postmeta.c.meta_key == key)
            .order_by(self.postmeta.c.meta_id)
        )
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).first()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return self._meta(row) if row is not None else None

    def insert_meta(self, record_id: int, key: str, value: str) -> int:
        stmt = insert(self.postmeta).values(post_id=record_id, meta_key=key, meta_value=value)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(stmt)
                return int(result.inserted_primary_key[0])
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    def update_meta(self, meta_id: int, value: str) -> None:
        stmt = update(self.postmeta).where(self.postmeta.c.meta_id == meta_id).values(meta_value=value)
        try:
            with self.engine.begin() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    def delete_meta(self, meta_id: int) -> None:
        stmt = delete(self.postmeta).where(self.postmeta.c.meta_id == meta_id)
        try:
            with self.engine.begin() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    def delete_meta_prefix(self, record_id: int, prefix: str) -> int:
        stmt = delete(self.postmeta).where(
            self.postmeta.c.post_id == record_id,
            self.postmeta.c.meta_key.like(_escape_like(prefix) + "%", escape="\\"),
        )
        try:
            with self.engine.begin() as conn:
                return conn.execute(stmt).rowcount or 0
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
