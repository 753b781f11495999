"""SQL-backed tracker store for production use.

Single-table schema keyed by (namespace, identifier), built with SQLAlchemy
Core so the same code runs against SQLite, PostgreSQL and MySQL/MariaDB.
Timestamps are stored as naive UTC and returned as aware UTC.

Writes never rely on read-then-write being atomic: inserts are guarded by the
primary key and updates can be made conditional on the row as it was read.
"""

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Column, ColumnElement, DateTime, Index, MetaData, String, Table, create_engine, func, insert, literal, select, update
from sqlalchemy.dialects import mysql
from sqlalchemy.engine import Connection, Dialect, Engine
from sqlalchemy.exc import ArgumentError, IntegrityError, SQLAlchemyError
from sqlalchemy.types import TypeDecorator, TypeEngine

from record_tracker.clock import ensure_utc
from record_tracker.exceptions import TrackerConfigError, TrackerStorageError
from record_tracker.logging import get_tracker_logger
from record_tracker.tracker_store._models import (
    MAX_IDENTIFIER_LENGTH,
    MAX_NAMESPACE_LENGTH,
    TRACKED_FIELDS,
    TrackedRecord,
    validate_key,
)

logger = get_tracker_logger(__name__)

TABLE_CHANGE_TRACKER = "change_tracker"


class UTCDateTime(TypeDecorator[datetime]):
    """DateTime column holding naive UTC, exposed to Python as aware UTC."""

    impl = DateTime
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        # MySQL DATETIME drops fractional seconds unless asked for them
        if dialect.name in ("mysql", "mariadb"):
            return dialect.type_descriptor(mysql.DATETIME(fsp=6))
        return dialect.type_descriptor(DateTime())

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        return ensure_utc(value).replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        return value.replace(tzinfo=UTC)


def build_table(name: str = TABLE_CHANGE_TRACKER, metadata: MetaData | None = None) -> Table:
    """Define the tracking table on the given (or a fresh) MetaData."""
    return Table(
        name,
        metadata if metadata is not None else MetaData(),
        Column("namespace", String(MAX_NAMESPACE_LENGTH), primary_key=True),
        Column("identifier", String(MAX_IDENTIFIER_LENGTH), primary_key=True),
        Column("first_indexed", UTCDateTime(), nullable=True),
        Column("last_indexed", UTCDateTime(), nullable=True),
        Column("last_record_change", UTCDateTime(), nullable=True),
        Column("deleted", UTCDateTime(), nullable=True),
        Index(f"{name}_last_indexed_idx", "namespace", "last_indexed"),
        Index(f"{name}_deleted_idx", "namespace", "deleted"),
    )


class SqlTrackerStore:
    """Relational tracker store.

    Pass either a database URL (the store creates and disposes its own engine)
    or an existing Engine (borrowed, never disposed here). Every operation runs
    in its own ``engine.begin()`` block, so connections go back to the pool on
    success, error and shutdown alike.
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        engine: Engine | None = None,
        table_name: str = TABLE_CHANGE_TRACKER,
        create_tables: bool = True,
    ) -> None:
        if (url is None) == (engine is None):
            raise TrackerConfigError("SqlTrackerStore needs exactly one of url or engine")
        self._owns_engine = engine is None
        if engine is None:
            try:
                engine = create_engine(url)  # type: ignore[arg-type]
            except (ArgumentError, ImportError) as e:
                raise TrackerConfigError(f"Cannot use tracker database URL: {e}") from e
        self._engine = engine
        self._table = build_table(table_name)
        self._create_tables = create_tables
        self._tables_initialized = False
        self._closed = False
        logger.info(f"Tracker store using {engine.url.render_as_string(hide_password=True)} table {table_name}")

    @property
    def table(self) -> Table:
        return self._table

    # --- Connection management ---

    def _ensure_tables(self) -> None:
        if self._tables_initialized:
            return
        if self._create_tables:
            self._table.metadata.create_all(self._engine, checkfirst=True)
            logger.info(f"Tracker table {self._table.name} verified/created")
        self._tables_initialized = True

    @contextmanager
    def _begin(self) -> Iterator[Connection]:
        if self._closed:
            raise TrackerStorageError("Tracker store is closed")
        self._ensure_tables()
        with self._engine.begin() as conn:
            yield conn

    def _key_clause(self, namespace: str, identifier: str) -> list[ColumnElement[bool]]:
        return [self._table.c.namespace == namespace, self._table.c.identifier == identifier]

    def _same_instant(self, column: Column[Any], value: datetime) -> ColumnElement[bool]:
        if self._engine.dialect.name == "sqlite":
            # SQLite stores text; writers disagree on the fractional part
            return func.julianday(column) == func.julianday(literal(value, column.type))
        return column == value

    def _row_matches(self, expected: TrackedRecord) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = []
        for name in sorted(TRACKED_FIELDS):
            column = self._table.c[name]
            value = getattr(expected, name)
            clauses.append(column.is_(None) if value is None else self._same_instant(column, value))
        return clauses

    # --- Row operations ---

    def insert(self, record: TrackedRecord) -> bool:
        """Insert a row. A primary key conflict means another writer got there first."""
        validate_key(record.namespace, record.identifier)
        values = {name: getattr(record, name) for name in ("namespace", "identifier", *sorted(TRACKED_FIELDS))}
        try:
            with self._begin() as conn:
                conn.execute(insert(self._table).values(**values))
        except IntegrityError:
            logger.debug(f"Row {record.namespace}/{record.identifier} already exists, insert skipped")
            return False
        except SQLAlchemyError as e:
            raise TrackerStorageError(f"Failed to insert {record.namespace}/{record.identifier}: {e}") from e
        return True

    def select_by_key(self, namespace: str, identifier: str) -> TrackedRecord | None:
        """Fetch one row by primary key."""
        try:
            with self._begin() as conn:
                row = conn.execute(select(self._table).where(*self._key_clause(namespace, identifier))).first()
        except SQLAlchemyError as e:
            raise TrackerStorageError(f"Failed to read {namespace}/{identifier}: {e}") from e
        if row is None:
            return None
        return TrackedRecord(**row._mapping)

    def update_by_key(
        self,
        namespace: str,
        identifier: str,
        fields: Mapping[str, datetime | None],
        *,
        expected: TrackedRecord | None = None,
    ) -> bool:
        """UPDATE one row, optionally WHERE it still holds the ``expected`` values."""
        unknown = set(fields) - TRACKED_FIELDS
        if unknown:
            raise TrackerConfigError(f"Not a tracked column: {sorted(unknown)}")
        if not fields:
            return False
        stmt = update(self._table).where(*self._key_clause(namespace, identifier))
        if expected is not None:
            stmt = stmt.where(*self._row_matches(expected))
        try:
            with self._begin() as conn:
                result = conn.execute(stmt.values(**dict(fields)))
        except SQLAlchemyError as e:
            raise TrackerStorageError(f"Failed to update {namespace}/{identifier}: {e}") from e
        return result.rowcount > 0

    # --- Range queries ---

    def _range_clause(self, column_name: str, namespace: str, since: datetime, until: datetime) -> list[ColumnElement[bool]]:
        column = self._table.c[column_name]
        clauses = [
            self._table.c.namespace == namespace,
            column.is_not(None),
            column >= ensure_utc(since),
            column <= ensure_utc(until),
        ]
        if column_name != "deleted":
            clauses.append(self._table.c.deleted.is_(None))
        return clauses

    def _list(self, column_name: str, namespace: str, since: datetime, until: datetime, offset: int, limit: int | None) -> list[TrackedRecord]:
        column = self._table.c[column_name]
        stmt = (
            select(self._table)
            .where(*self._range_clause(column_name, namespace, since, until))
            .order_by(column, self._table.c.identifier)
            .offset(offset)
            .limit(limit)
        )
        try:
            with self._begin() as conn:
                rows = conn.execute(stmt).all()
        except SQLAlchemyError as e:
            raise TrackerStorageError(f"Failed to list {namespace} rows by {column_name}: {e}") from e
        return [TrackedRecord(**row._mapping) for row in rows]

    def _count(self, column_name: str, namespace: str, since: datetime, until: datetime) -> int:
        stmt = select(func.count()).select_from(self._table).where(*self._range_clause(column_name, namespace, since, until))
        try:
            with self._begin() as conn:
                return int(conn.execute(stmt).scalar_one())
        except SQLAlchemyError as e:
            raise TrackerStorageError(f"Failed to count {namespace} rows by {column_name}: {e}") from e

    def list_changed(
        self,
        namespace: str,
        since: datetime,
        until: datetime,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[TrackedRecord]:
        """Active rows with last_indexed in [since, until], oldest first."""
        return self._list("last_indexed", namespace, since, until, offset, limit)

    def count_changed(self, namespace: str, since: datetime, until: datetime) -> int:
        return self._count("last_indexed", namespace, since, until)

    def list_deleted(
        self,
        namespace: str,
        since: datetime,
        until: datetime,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[TrackedRecord]:
        """Tombstones with deleted in [since, until], oldest first."""
        return self._list("deleted", namespace, since, until, offset, limit)

    def count_deleted(self, namespace: str, since: datetime, until: datetime) -> int:
        return self._count("deleted", namespace, since, until)

    def close(self) -> None:
        """Refuse further operations and dispose the engine if this store created it."""
        if self._closed:
            return
        self._closed = True
        if self._owns_engine:
            self._engine.dispose()
        logger.info(f"Tracker store closed ({self._table.name})")
