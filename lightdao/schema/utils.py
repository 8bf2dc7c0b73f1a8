"""Schema utility classes - Foundation for all entity metadata."""

import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from lightdao.exceptions import UnsupportedDefaultForBlob


class ColumnKind(Enum):
    """Primitive kinds a column may be declared with."""

    INTEGER = "INTEGER"
    REAL = "REAL"
    TEXT = "TEXT"
    BLOB = "BLOB"
    BOOLEAN = "BOOLEAN"

    @property
    def sql_type(self) -> str:
        """Storage type used in DDL. Booleans are stored as 0/1 integers."""
        if self is ColumnKind.BOOLEAN:
            return "INTEGER"
        return self.value

    @property
    def zero_value(self) -> Any:
        return _ZERO_VALUES[self]


_ZERO_VALUES = {
    ColumnKind.INTEGER: 0,
    ColumnKind.REAL: 0.0,
    ColumnKind.TEXT: "",
    ColumnKind.BLOB: b"",
    ColumnKind.BOOLEAN: False,
}


PYTHON_KINDS: dict[type, ColumnKind] = {
    bool: ColumnKind.BOOLEAN,
    int: ColumnKind.INTEGER,
    float: ColumnKind.REAL,
    str: ColumnKind.TEXT,
    bytes: ColumnKind.BLOB,
}


@dataclass(frozen=True)
class ForeignKeyRef:
    """Target of a REFERENCES clause."""

    table: str
    column: str

    def to_sql(self) -> str:
        return f"REFERENCES {self.table}({self.column})"


@dataclass(frozen=True)
class ColumnDescriptor:
    """Represents a persisted field with its type and constraints."""

    field_name: str
    name: str
    kind: ColumnKind
    nullable: bool = True
    unique: bool = False
    default: str | None = None
    primary_key: bool = False
    foreign_key: ForeignKeyRef | None = None
    alias: str | None = None

    @property
    def projection(self) -> str:
        """Expression used in SELECT lists of join queries."""
        return self.alias or self.name

    def to_sql(self) -> str:
        """Generate SQL column definition."""
        parts = [self.name, self.kind.sql_type]
        if self.primary_key:
            parts.append("PRIMARY KEY AUTOINCREMENT")
        if self.default is not None:
            if self.kind is ColumnKind.BLOB:
                raise UnsupportedDefaultForBlob(
                    f"SQLite does not support a default value for BLOB column '{self.name}'",
                    {"column": self.name},
                )
            escaped = self.default.replace("'", "''")
            parts.append(f"DEFAULT '{escaped}'")
        if self.unique:
            parts.append("UNIQUE")
        if not self.nullable:
            parts.append("NOT NULL")
        if self.foreign_key is not None:
            parts.append(self.foreign_key.to_sql())
        return " ".join(parts)


class JoinKind(Enum):
    """Join operator used by a query-only type."""

    INNER = "INNER JOIN"
    LEFT = "LEFT JOIN"
    CROSS = "CROSS JOIN"
    NATURAL = "NATURAL JOIN"

    @property
    def needs_condition(self) -> bool:
        return self in (JoinKind.INNER, JoinKind.LEFT)


@dataclass(frozen=True)
class JoinItem:
    """One link of a join chain: first_table.first_column = second_table.second_column."""

    first_table: str
    first_column: str | None = None
    second_table: str | None = None
    second_column: str | None = None

    def on_clause(self) -> str:
        return (
            f"{self.first_table}.{self.first_column}"
            f"={self.second_table}.{self.second_column}"
        )


@dataclass(frozen=True)
class JoinSpecification:
    """Declarative join chain attached to a query-only type."""

    kind: JoinKind
    items: tuple[JoinItem, ...]

    def tables(self) -> list[str]:
        """Tables in join order, first table first."""
        names = [self.items[0].first_table]
        names.extend(item.second_table for item in self.items)
        return names


@dataclass(frozen=True)
class EntityType:
    """Represents the complete schema of one record type."""

    record_type: type
    table: str | None
    columns: tuple[ColumnDescriptor, ...]
    order_by: str | None = None
    join: JoinSpecification | None = None
    _by_name: dict[str, ColumnDescriptor] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        self._by_name.update({col.name: col for col in self.columns})

    @property
    def name(self) -> str:
        return self.record_type.__name__

    @property
    def is_query(self) -> bool:
        return self.table is None

    @property
    def primary_key(self) -> ColumnDescriptor | None:
        for col in self.columns:
            if col.primary_key:
                return col
        return None

    def column_names(self) -> list[str]:
        """Get list of column names in definition order."""
        return [col.name for col in self.columns]

    def projections(self) -> list[str]:
        """SELECT list of a join query, in definition order."""
        return [col.projection for col in self.columns]

    def get_column(self, name: str) -> ColumnDescriptor | None:
        return self._by_name.get(name)

    def validate_against_db(self, cursor: sqlite3.Cursor) -> tuple[bool, list[str]]:
        """Validate that the actual database table matches this entity."""
        errors = []

        cursor.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (self.table,))
        if not cursor.fetchone():
            errors.append(f"Table {self.table} does not exist")
            return False, errors

        cursor.execute(f"PRAGMA table_info({self.table})")
        actual_cols = {row[1]: row[2] for row in cursor.fetchall()}

        for col in self.columns:
            if col.name not in actual_cols:
                errors.append(f"Column {self.table}.{col.name} missing in database")
            elif actual_cols[col.name].upper() != col.kind.sql_type:
                errors.append(
                    f"Column {self.table}.{col.name} type mismatch: "
                    f"expected {col.kind.sql_type}, got {actual_cols[col.name]}"
                )

        return len(errors) == 0, errors
