"""Database facade: one connection, one registry, builder factories."""

import sqlite3
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from lightdao.batch import BatchJobs, apply_batch
from lightdao.config_runtime import load_runtime_config
from lightdao.connection import connect, transaction
from lightdao.ddl import MigrationReport, create_tables, migrate, validate_schema
from lightdao.exceptions import LightDaoError, QueryFailed
from lightdao.query import ConditionBuilder, JoinConditionBuilder
from lightdao.schema.registry import Registry
from lightdao.schema.utils import EntityType
from lightdao.sql import SQLStatement
from lightdao.statements import build_insert_statement
from lightdao.utils.constants import NOT_SAVED
from lightdao.utils.logging import logger


class Database:
    """Entry point for reads and writes against one SQLite file.

    Usage::

        with Database.open("app.db") as db:
            db.migrate([Person])
            person = db.save(Person(name="Ada", age=36))
            db.with_table(Person).with_where("age > ?", 20).count()
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        registry: Registry | None = None,
        config: dict[str, Any] | None = None,
    ):
        self.conn = conn
        self.registry = registry or Registry()
        self.config = config or load_runtime_config()
        self.strict = bool(self.config["marshal"]["strict"])

    @classmethod
    def open(
        cls,
        db_path: str | Path,
        registry: Registry | None = None,
        config: dict[str, Any] | None = None,
    ) -> "Database":
        config = config or load_runtime_config()
        return cls(connect(db_path, config), registry=registry, config=config)

    # ------------------------------------------------------------------
    # builders
    # ------------------------------------------------------------------

    def with_table(self, record_type: type) -> ConditionBuilder:
        """Builder over the table of a persisted type."""
        return ConditionBuilder(self.conn, self.registry.describe(record_type), strict=self.strict)

    def with_query(self, record_type: type) -> JoinConditionBuilder:
        """Read-only builder over the join chain of a query type."""
        return JoinConditionBuilder(
            self.conn, self.registry.describe(record_type), strict=self.strict
        )

    def batch(self) -> BatchJobs:
        return BatchJobs(self.registry, strict=self.strict)

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    def _insert(self, instance: Any, operation: str) -> Any:
        entity = self.registry.describe(type(instance))
        stmt = build_insert_statement(entity, instance, strict=self.strict)
        logger.debug(f"SQL: {stmt.inline()}")
        try:
            cursor = self.conn.execute(stmt.sql, stmt.raw_args())
        except (sqlite3.Error, OverflowError) as e:
            raise QueryFailed(
                f"{operation}() into {entity.table} failed: {e}",
                {"sql": stmt.sql, "args": list(stmt.raw_args())},
            ) from e
        try:
            setattr(instance, entity.primary_key.field_name, cursor.lastrowid)
        finally:
            cursor.close()
        return instance

    def save(self, instance: Any) -> Any:
        """INSERT ``instance`` and write the assigned key back to it."""
        return self._insert(instance, "save")

    def save_all(self, instances: Iterable[Any]) -> list[Any]:
        """INSERT every instance in one transaction, writing keys back.

        Either every instance is stored or, on the first failure, none is.
        """
        saved = []
        try:
            with transaction(self.conn):
                for instance in instances:
                    saved.append(self._insert(instance, "save_all"))
        except LightDaoError:
            for instance in saved:
                key_field = self.registry.describe(type(instance)).primary_key.field_name
                setattr(instance, key_field, NOT_SAVED)
            raise
        return saved

    def apply_batch_jobs(self, jobs: BatchJobs) -> bool:
        return apply_batch(self.conn, jobs)

    def execute(self, sql: str, *args: Any) -> int:
        """Run one raw statement; returns the affected row count."""
        stmt = SQLStatement(sql, args)
        try:
            cursor = self.conn.execute(stmt.sql, stmt.raw_args())
        except sqlite3.Error as e:
            raise QueryFailed(f"execute() failed: {e}", {"sql": stmt.sql}) from e
        try:
            return cursor.rowcount
        finally:
            cursor.close()

    # ------------------------------------------------------------------
    # schema
    # ------------------------------------------------------------------

    def _describe_all(self, record_types: Iterable[type]) -> list[EntityType]:
        return self.registry.register(*record_types)

    def create_tables(self, record_types: Iterable[type]) -> list[SQLStatement]:
        return create_tables(self.conn, self._describe_all(record_types))

    def migrate(self, record_types: Iterable[type]) -> MigrationReport:
        return migrate(self.conn, self._describe_all(record_types))

    def validate_schema(self, record_types: Iterable[type]) -> dict[str, list[str]]:
        return validate_schema(self.conn, self._describe_all(record_types))

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
