"""Parameterized INSERT/UPDATE/DELETE statements built from entity metadata.

Shared by the condition builders and the batch job queue; every value is
bound, never interpolated.
"""

from collections.abc import Mapping
from typing import Any

from lightdao.exceptions import MissingTableMetadata, UnsavedRecord
from lightdao.marshal import to_row
from lightdao.schema.utils import ColumnKind, EntityType
from lightdao.sql import SQLStatement, to_bind_arg
from lightdao.utils.constants import NOT_SAVED


def _require_table(entity: EntityType) -> str:
    if entity.table is None:
        raise MissingTableMetadata(
            f"{entity.name} is a query type and has no table",
            {"type": entity.name},
        )
    return entity.table


def _key_column(entity: EntityType) -> str:
    return entity.primary_key.name


def _require_saved(entity: EntityType, key: Any) -> None:
    if key is None or key == NOT_SAVED:
        raise UnsavedRecord(
            f"The record of table [{entity.table}] with id '{key}' was never saved",
            {"table": entity.table, "id": key},
        )


def update_values(entity: EntityType, values: Mapping[str, Any]) -> list[tuple[str, Any]]:
    """Validate an update mapping against the entity's columns.

    The primary key is dropped; booleans are stored as 1/0.
    """
    if not values:
        raise ValueError("Update values are empty, nothing will be updated")

    pairs = []
    for name, value in values.items():
        col = entity.get_column(name)
        if col is None:
            raise ValueError(
                f"Unknown column '{name}' in table '{entity.table}'. "
                f"Valid columns: {', '.join(sorted(entity.column_names()))}"
            )
        if col.primary_key:
            continue
        if col.kind is ColumnKind.BOOLEAN and value is not None:
            value = 1 if value else 0
        pairs.append((name, value))

    if not pairs:
        raise ValueError("Update values only name the primary key, nothing will be updated")
    return pairs


def build_insert_statement(entity: EntityType, instance: Any, strict: bool = False) -> SQLStatement:
    """INSERT INTO <table> (<cols>) VALUES (?, ...)."""
    table = _require_table(entity)
    row = to_row(entity, instance, strict=strict)
    if not row:
        return SQLStatement(f"INSERT INTO {table} DEFAULT VALUES")

    column_list = ", ".join(name for name, _ in row)
    placeholders = ", ".join("?" for _ in row)
    return SQLStatement(
        f"INSERT INTO {table} ({column_list}) VALUES ({placeholders})",
        tuple(value for _, value in row),
    )


def build_update_statement(
    entity: EntityType,
    values: Mapping[str, Any],
    where: str | None = None,
    where_args: tuple = (),
) -> SQLStatement:
    """UPDATE <table> SET col=?, ... [WHERE <where>]."""
    table = _require_table(entity)
    pairs = update_values(entity, values)

    assignments = ", ".join(f"{name}=?" for name, _ in pairs)
    sql = f"UPDATE {table} SET {assignments}"
    args = [value for _, value in pairs]
    if where:
        sql += f" WHERE {where}"
        args.extend(to_bind_arg(arg) for arg in where_args)
    return SQLStatement(sql, tuple(args))


def build_update_by_id_statement(
    entity: EntityType, key: int, values: Mapping[str, Any]
) -> SQLStatement:
    _require_saved(entity, key)
    return build_update_statement(entity, values, f"{_key_column(entity)}=?", (key,))


def build_update_instance_statement(
    entity: EntityType, instance: Any, strict: bool = False
) -> SQLStatement:
    """UPDATE every non-key column of a saved instance."""
    key = getattr(instance, entity.primary_key.field_name)
    _require_saved(entity, key)
    values = dict(to_row(entity, instance, strict=strict))
    return build_update_statement(entity, values, f"{_key_column(entity)}=?", (key,))


def build_delete_statement(
    entity: EntityType, where: str | None = None, where_args: tuple = ()
) -> SQLStatement:
    """DELETE FROM <table> [WHERE <where>]."""
    table = _require_table(entity)
    if not where:
        return SQLStatement(f"DELETE FROM {table}")
    return SQLStatement(
        f"DELETE FROM {table} WHERE {where}",
        tuple(to_bind_arg(arg) for arg in where_args),
    )


def build_delete_by_id_statement(entity: EntityType, key: int) -> SQLStatement:
    _require_saved(entity, key)
    return build_delete_statement(entity, f"{_key_column(entity)}=?", (key,))


def build_delete_instance_statement(entity: EntityType, instance: Any) -> SQLStatement:
    return build_delete_by_id_statement(entity, getattr(instance, entity.primary_key.field_name))
