"""Table creation, additive migration and schema validation."""

import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from lightdao.connection import transaction
from lightdao.exceptions import MissingTableMetadata, QueryFailed
from lightdao.schema.utils import ColumnDescriptor, EntityType
from lightdao.sql import SQLStatement
from lightdao.utils.logging import logger


def _persisted(entities: Iterable[EntityType]) -> list[EntityType]:
    """Drop query-only types; they have no table of their own."""
    return [entity for entity in entities if not entity.is_query]


def build_create_statement(entity: EntityType) -> SQLStatement:
    """Generate CREATE TABLE statement."""
    if entity.is_query:
        raise MissingTableMetadata(
            f"{entity.name} is a query type and has no table to create",
            {"type": entity.name},
        )

    col_defs = [col.to_sql() for col in entity.columns]
    return SQLStatement(f"CREATE TABLE IF NOT EXISTS {entity.table} (" + ", ".join(col_defs) + ")")


def build_add_column_statement(entity: EntityType, column: ColumnDescriptor) -> SQLStatement:
    """Generate ALTER TABLE ... ADD for one missing column."""
    return SQLStatement(f"ALTER TABLE {entity.table} ADD {column.name} {column.kind.sql_type}")


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,))
    try:
        return cursor.fetchone() is not None
    finally:
        cursor.close()


def existing_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    cursor = conn.execute(f"PRAGMA table_info({table})")
    try:
        return {row[1] for row in cursor.fetchall()}
    finally:
        cursor.close()


class MigrationState(Enum):
    CHECK_EXISTS = "check_exists"
    CREATE = "create"
    DIFF_COLUMNS = "diff_columns"
    DONE = "done"


@dataclass
class MigrationReport:
    """Statements executed by one migration run."""

    created: list[str] = field(default_factory=list)
    statements: list[SQLStatement] = field(default_factory=list)

    @property
    def altered(self) -> list[SQLStatement]:
        return [stmt for stmt in self.statements if stmt.sql.startswith("ALTER TABLE")]

    @property
    def changed(self) -> bool:
        return bool(self.statements)


def _migrate_entity(conn: sqlite3.Connection, entity: EntityType, report: MigrationReport) -> None:
    state = MigrationState.CHECK_EXISTS

    while state is not MigrationState.DONE:
        logger.debug(f"Migrating {entity.table}: {state.value}")

        if state is MigrationState.CHECK_EXISTS:
            if table_exists(conn, entity.table):
                state = MigrationState.DIFF_COLUMNS
            else:
                state = MigrationState.CREATE

        elif state is MigrationState.CREATE:
            stmt = build_create_statement(entity)
            conn.execute(stmt.sql)
            report.created.append(entity.table)
            report.statements.append(stmt)
            logger.info(f"Created table {entity.table}")
            state = MigrationState.DONE

        elif state is MigrationState.DIFF_COLUMNS:
            present = existing_columns(conn, entity.table)
            for col in entity.columns:
                if col.name in present:
                    continue
                stmt = build_add_column_statement(entity, col)
                conn.execute(stmt.sql)
                report.statements.append(stmt)
                logger.info(f"Added column {entity.table}.{col.name} {col.kind.sql_type}")
            state = MigrationState.DONE


def migrate(conn: sqlite3.Connection, entities: Iterable[EntityType]) -> MigrationReport:
    """Bring every persisted table up to its current declaration.

    Missing tables are created and missing columns added; nothing is ever
    dropped, renamed or retyped. Runs in one transaction; re-running against
    an up-to-date database executes nothing.
    """
    report = MigrationReport()
    try:
        with transaction(conn):
            for entity in _persisted(entities):
                _migrate_entity(conn, entity, report)
    except sqlite3.Error as e:
        raise QueryFailed(f"Migration failed: {e}", {"executed": len(report.statements)}) from e

    if not report.changed:
        logger.debug("Migration found nothing to do")
    return report


def create_tables(conn: sqlite3.Connection, entities: Iterable[EntityType]) -> list[SQLStatement]:
    """Create every persisted table (first-install path)."""
    executed = []
    try:
        with transaction(conn):
            for entity in _persisted(entities):
                stmt = build_create_statement(entity)
                conn.execute(stmt.sql)
                executed.append(stmt)
    except sqlite3.Error as e:
        raise QueryFailed(f"Table creation failed: {e}") from e

    logger.info(f"Created {len(executed)} tables")
    return executed


def validate_schema(conn: sqlite3.Connection, entities: Iterable[EntityType]) -> dict[str, list[str]]:
    """Validate all persisted tables against the actual database."""
    results = {}
    cursor = conn.cursor()
    try:
        for entity in _persisted(entities):
            is_valid, errors = entity.validate_against_db(cursor)
            if not is_valid:
                results[entity.table] = errors
    finally:
        cursor.close()
    return results
