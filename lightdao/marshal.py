"""Conversion between record instances and rows.

``to_row`` feeds INSERT/UPDATE statements, ``from_row`` populates new
instances from ``sqlite3.Row`` results.
"""

from collections.abc import Iterable
from typing import Any

from lightdao.exceptions import FieldCoercionError, NullableViolation
from lightdao.schema.utils import ColumnDescriptor, ColumnKind, EntityType
from lightdao.utils.constants import NOT_SAVED


def _write_value(col: ColumnDescriptor, value: Any) -> Any:
    if col.kind is ColumnKind.BOOLEAN:
        return 1 if value else 0
    if col.kind is ColumnKind.BLOB and isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    return value


def to_row(entity: EntityType, instance: Any, strict: bool = False) -> list[tuple[str, Any]]:
    """Convert ``instance`` into ordered (column, value) pairs.

    An unsaved primary key is left out so the engine assigns it. Lenient mode
    replaces None with the kind's zero value; strict mode keeps NULL for
    nullable columns, leaves columns with a default literal to the engine and
    raises NullableViolation for the rest.
    """
    row = []
    for col in entity.columns:
        value = getattr(instance, col.field_name, None)

        if col.primary_key:
            if value is None or value == NOT_SAVED:
                continue
            row.append((col.name, value))
            continue

        if value is None:
            if not strict:
                value = col.kind.zero_value
            elif col.default is not None:
                continue
            elif not col.nullable:
                raise NullableViolation(
                    f"Field [{col.field_name}] of table [{entity.table}] is NOT NULL but has no value",
                    {"table": entity.table, "field": col.field_name, "column": col.name},
                )
            else:
                row.append((col.name, None))
                continue

        row.append((col.name, _write_value(col, value)))
    return row


def _coerce(col: ColumnDescriptor, value: Any) -> Any:
    """Convert a stored value to the field's kind; raise TypeError on mismatch."""
    if value is None:
        return None

    kind = col.kind
    if kind is ColumnKind.INTEGER:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
    elif kind is ColumnKind.REAL:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif kind is ColumnKind.TEXT:
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
    elif kind is ColumnKind.BLOB:
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
    elif kind is ColumnKind.BOOLEAN:
        if isinstance(value, int):
            return value == 1

    raise TypeError(f"{type(value).__name__} value cannot be read as {kind.value}")


def from_row(entity: EntityType, row: Any, columns: Iterable[str] = ()) -> Any:
    """Create a record instance from a result row.

    Args:
        entity: Metadata of the record type
        row: ``sqlite3.Row`` (or any mapping keyed by column name)
        columns: Column names to populate; empty means all columns

    Raises:
        FieldCoercionError: A requested column is missing or holds a value of
            the wrong kind.
    """
    wanted = set(columns)
    available = set(row.keys())
    owner = entity.table or entity.name
    instance = entity.record_type()

    for col in entity.columns:
        if wanted and col.name not in wanted:
            continue

        if col.name not in available:
            raise FieldCoercionError(
                f"Cursor has no column for field [{col.field_name}] in table [{owner}]",
                {"table": owner, "field": col.field_name, "column": col.name},
            )

        try:
            value = _coerce(col, row[col.name])
        except TypeError as e:
            raise FieldCoercionError(
                f"Cursor value cannot be converted to field's value for field "
                f"[{col.field_name}] in table [{owner}]: {e}",
                {"table": owner, "field": col.field_name, "kind": col.kind.value},
            ) from e
        setattr(instance, col.field_name, value)

    return instance
