"""Condition builders: SELECT rendering and row-level operations.

Builders are immutable. Every ``with_*`` call returns a new builder, so a
configured builder can be reused without leaking state between queries::

    adults = db.with_table(Person).with_where("age >= ?", 18)
    adults.count()
    adults.with_limit(0, 10).search_as_list()
"""

import re
import sqlite3
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from lightdao.exceptions import (
    FieldCoercionError,
    InvalidPrimaryKey,
    MissingTableMetadata,
    NoJoinSpecification,
    NotModifiable,
    QueryFailed,
)
from lightdao.marshal import from_row
from lightdao.schema.utils import EntityType, JoinKind, JoinSpecification
from lightdao.sql import SQLStatement, render_select, to_bind_arg
from lightdao.statements import (
    build_delete_statement,
    build_update_instance_statement,
    build_update_statement,
)
from lightdao.utils.constants import COUNT_COLUMN, NOT_SAVED, SEQUENCE_RESET_THRESHOLD
from lightdao.utils.logging import logger

# ============================================================================
# JOIN RENDERING - one renderer per JoinKind
# ============================================================================


def _render_conditional_join(spec: JoinSpecification) -> str:
    parts = [spec.items[0].first_table]
    for item in spec.items:
        parts.append(f"{spec.kind.value} {item.second_table} ON {item.on_clause()}")
    return " ".join(parts)


def _render_plain_join(spec: JoinSpecification) -> str:
    return f" {spec.kind.value} ".join(spec.tables())


JOIN_RENDERERS: dict[JoinKind, Callable[[JoinSpecification], str]] = {
    JoinKind.INNER: _render_conditional_join,
    JoinKind.LEFT: _render_conditional_join,
    JoinKind.CROSS: _render_plain_join,
    JoinKind.NATURAL: _render_plain_join,
}


def render_join(entity: EntityType) -> str:
    """FROM clause of a query-only type."""
    if entity.join is None:
        raise NoJoinSpecification(
            f"No join declaration found on [{entity.name}]",
            {"type": entity.name},
        )
    return JOIN_RENDERERS[entity.join.kind](entity.join)


_AS_PATTERN = re.compile(r"\s+as\s+", re.IGNORECASE)


def result_name(expression: str) -> str:
    """Column name a projection expression produces in the result row."""
    name = _AS_PATTERN.split(expression.strip())[-1]
    return name.rsplit(".", 1)[-1].strip()


# ============================================================================
# BUILDERS
# ============================================================================


@dataclass(frozen=True)
class BuilderSupport:
    """State and read operations shared by both builders."""

    conn: sqlite3.Connection
    entity: EntityType
    columns: tuple[str, ...] | None = None
    where: str | None = None
    where_args: tuple = ()
    group_by: str | None = None
    having: str | None = None
    order_by: str | None = None
    limit: tuple[int, int] | None = None
    distinct: bool = False
    strict: bool = False

    # ------------------------------------------------------------------
    # configuration
    # ------------------------------------------------------------------

    def with_columns(self, *columns: str):
        return replace(self, columns=tuple(columns) or None)

    def with_where(self, where: str | None, *where_args: Any):
        """Set the WHERE template; arguments are converted immediately.

        Raises:
            UnsupportedBindArgument: An argument is not str, int, float or bool.
        """
        args = tuple(to_bind_arg(arg) for arg in where_args)
        return replace(self, where=where or None, where_args=args)

    def with_group_by(self, group_by: str | None):
        return replace(self, group_by=group_by or None)

    def with_having(self, having: str | None):
        return replace(self, having=having or None)

    def with_order_by(self, order_by: str | None):
        return replace(self, order_by=order_by or None)

    def with_limit(self, offset: int, size: int):
        if offset < 0 or size < 0:
            raise ValueError(f"Invalid limit: offset={offset} size={size}")
        return replace(self, limit=(int(offset), int(size)))

    def with_distinct(self, distinct: bool = True):
        return replace(self, distinct=distinct)

    # ------------------------------------------------------------------
    # rendering
    # ------------------------------------------------------------------

    def _from_clause(self) -> str:
        raise NotImplementedError

    def _default_projection(self) -> list[str]:
        raise NotImplementedError

    def _result_columns(self) -> tuple[str, ...]:
        if not self.columns:
            return ()
        return tuple(result_name(col) for col in self.columns)

    def to_statement(self) -> SQLStatement:
        """Render the SELECT this builder would run."""
        sql = render_select(
            self._from_clause(),
            columns=list(self.columns) if self.columns else self._default_projection(),
            where=self.where,
            group_by=self.group_by,
            having=self.having,
            order_by=self.order_by or self.entity.order_by,
            limit=self.limit,
            distinct=self.distinct,
        )
        return SQLStatement(sql, self.where_args)

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def search(self) -> sqlite3.Cursor:
        """Run the SELECT and return the open cursor; the caller closes it."""
        stmt = self.to_statement()
        logger.debug(f"SQL: {stmt.inline()}")
        try:
            return self.conn.execute(stmt.sql, stmt.raw_args())
        except sqlite3.Error as e:
            raise QueryFailed(
                f"search() on {self.entity.name} failed: {e}",
                {"sql": stmt.sql, "args": list(stmt.raw_args())},
            ) from e

    def search_as_list(self) -> list:
        """All matching records.

        A row that cannot be read ends the scan; the records read before it
        are returned and the failure is logged.
        """
        cursor = self.search()
        columns = self._result_columns()
        records = []
        try:
            for row in cursor:
                records.append(from_row(self.entity, row, columns))
        except (FieldCoercionError, sqlite3.Error) as e:
            logger.opt(exception=e).error(
                f"search_as_list() on {self.entity.name} stopped after {len(records)} rows: {e}"
            )
        finally:
            cursor.close()
        return records

    def search_first(self):
        """First matching record, or None."""
        cursor = self.search()
        try:
            row = cursor.fetchone()
            if row is None:
                return None
            return from_row(self.entity, row, self._result_columns())
        except sqlite3.Error as e:
            raise QueryFailed(f"search_first() on {self.entity.name} failed: {e}") from e
        finally:
            cursor.close()

    def search_by_id(self, key: int):
        pk = self.entity.primary_key
        if pk is None:
            raise InvalidPrimaryKey(
                f"{self.entity.name} has no primary key to search by",
                {"type": self.entity.name},
            )
        return self.with_where(f"{pk.name}=?", key).search_first()

    def count(self) -> int:
        """Number of matching rows; 0 when the query yields no row."""
        cursor = replace(self, columns=(COUNT_COLUMN,)).search()
        try:
            row = cursor.fetchone()
        except sqlite3.Error as e:
            raise QueryFailed(f"count() on {self.entity.name} failed: {e}") from e
        finally:
            cursor.close()

        if row is None or row[0] is None:
            return 0
        return int(row[0])


@dataclass(frozen=True)
class ConditionBuilder(BuilderSupport):
    """Builder for one persisted table; adds update and delete."""

    def __post_init__(self):
        if self.entity.table is None:
            raise MissingTableMetadata(
                f"{self.entity.name} is a query type; use with_query()",
                {"type": self.entity.name},
            )

    def _from_clause(self) -> str:
        return self.entity.table

    def _default_projection(self) -> list[str]:
        return self.entity.column_names()

    def _execute_write(self, stmt: SQLStatement, operation: str) -> int:
        logger.debug(f"SQL: {stmt.inline()}")
        try:
            cursor = self.conn.execute(stmt.sql, stmt.raw_args())
        except sqlite3.Error as e:
            raise QueryFailed(
                f"{operation}() on {self.entity.table} failed: {e}",
                {"sql": stmt.sql, "args": list(stmt.raw_args())},
            ) from e
        try:
            return cursor.rowcount
        finally:
            cursor.close()

    def update(self, values: Mapping[str, Any] | Any) -> int:
        """Update matching rows.

        ``values`` is either a column -> value mapping applied with the
        builder's WHERE clause, or a saved record, which updates that record's
        row by key. Returns the number of rows changed.
        """
        if isinstance(values, Mapping):
            stmt = build_update_statement(self.entity, values, self.where, self.where_args)
            return self._execute_write(stmt, "update")

        key = getattr(values, self.entity.primary_key.field_name)
        if key is None or key == NOT_SAVED:
            return 0
        stmt = build_update_instance_statement(self.entity, values, strict=self.strict)
        return self._execute_write(stmt, "update")

    def delete(self, instance: Any = None) -> int:
        """Delete ``instance``, or every row matching the WHERE clause.

        Without a WHERE clause the whole table is emptied and its key sequence
        may be reset.
        """
        if instance is not None:
            return self.delete_by_id(getattr(instance, self.entity.primary_key.field_name))

        stmt = build_delete_statement(self.entity, self.where, self.where_args)
        count = self._execute_write(stmt, "delete")
        if not self.where:
            self._reset_sequence_if_needed()
        return count

    def delete_by_id(self, key: int) -> int:
        if key is None or key == NOT_SAVED:
            return 0
        return self.with_where(f"{self.entity.primary_key.name}=?", key).delete()

    def delete_all(self) -> int:
        return replace(self, where=None, where_args=()).delete()

    def _reset_sequence_if_needed(self) -> None:
        """Reset sqlite_sequence to 0 once it passes three quarters of the key range."""
        table = self.entity.table
        try:
            cursor = self.conn.execute("SELECT seq FROM sqlite_sequence WHERE name = ?", (table,))
            try:
                row = cursor.fetchone()
            finally:
                cursor.close()

            if row is not None and row[0] is not None and row[0] > SEQUENCE_RESET_THRESHOLD:
                self.conn.execute("UPDATE sqlite_sequence SET seq = 0 WHERE name = ?", (table,))
                logger.info(f"Reset primary key sequence of {table} (was {row[0]})")
        except sqlite3.Error as e:
            logger.warning(f"Could not check key sequence of {table}: {e}")


@dataclass(frozen=True)
class JoinConditionBuilder(BuilderSupport):
    """Builder for query-only types; renders the type's join chain and is read-only."""

    def _from_clause(self) -> str:
        return render_join(self.entity)

    def _default_projection(self) -> list[str]:
        return self.entity.projections()

    def _read_only(self, operation: str):
        return NotModifiable(
            f"{operation}() is not supported on join type {self.entity.name}",
            {"type": self.entity.name},
        )

    def update(self, values: Any) -> int:
        raise self._read_only("update")

    def delete(self, instance: Any = None) -> int:
        raise self._read_only("delete")

    def delete_by_id(self, key: int) -> int:
        raise self._read_only("delete_by_id")

    def delete_all(self) -> int:
        raise self._read_only("delete_all")
