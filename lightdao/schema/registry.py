"""Type metadata registry.

Introspects record types once and caches their EntityType. One Registry is
owned by each Database; nothing here is process-global.
"""

import dataclasses
import threading
import types
import typing
from typing import Any

from lightdao.exceptions import (
    ConfigurationError,
    InvalidPrimaryKey,
    MissingTableMetadata,
    NoJoinSpecification,
    UnsupportedColumnType,
    UnsupportedDefaultForBlob,
)
from lightdao.utils.logging import logger

from .declarations import (
    COLUMN_MARKER,
    JOINS_ATTR,
    ORDER_BY_ATTR,
    TABLE_ATTR,
    ColumnSpec,
    Entity,
)
from .utils import (
    PYTHON_KINDS,
    ColumnDescriptor,
    ColumnKind,
    EntityType,
    ForeignKeyRef,
    JoinSpecification,
)


def resolve_kind(annotation: Any) -> ColumnKind | None:
    """Map a field annotation to a ColumnKind; ``X | None`` maps like ``X``."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) != 1:
            return None
        annotation = args[0]
    if not isinstance(annotation, type):
        return None
    return PYTHON_KINDS.get(annotation)


class Registry:
    """Cache of EntityType per record type.

    ``describe`` is safe under concurrent first access: introspection runs
    outside the lock and the first result stored wins.
    """

    def __init__(self):
        self._cache: dict[type, EntityType] = {}
        self._lock = threading.Lock()

    def describe(self, record_type: type) -> EntityType:
        """Return the cached EntityType for ``record_type``, building it once."""
        cached = self._cache.get(record_type)
        if cached is not None:
            return cached

        entity = self._introspect(record_type)
        with self._lock:
            winner = self._cache.setdefault(record_type, entity)
        if winner is entity:
            logger.debug(
                f"Described {entity.name}: table={entity.table} "
                f"columns={entity.column_names()}"
            )
        return winner

    def register(self, *record_types: type) -> list[EntityType]:
        """Describe types eagerly so declaration errors surface at startup."""
        return [self.describe(record_type) for record_type in record_types]

    def registered(self) -> list[type]:
        """Described types, in the order they were first described."""
        with self._lock:
            return list(self._cache)

    def table_name(self, record_type: type) -> str:
        entity = self.describe(record_type)
        if entity.table is None:
            raise MissingTableMetadata(
                f"{entity.name} is a query type and has no table",
                {"type": entity.name},
            )
        return entity.table

    def default_order_by(self, record_type: type) -> str | None:
        return self.describe(record_type).order_by

    def __contains__(self, record_type: type) -> bool:
        return record_type in self._cache

    def _introspect(self, record_type: type) -> EntityType:
        if not isinstance(record_type, type) or not dataclasses.is_dataclass(record_type):
            raise ConfigurationError(
                f"{record_type!r} is not a dataclass record type",
                {"type": repr(record_type)},
            )

        type_name = record_type.__name__
        own = vars(record_type)
        table = own.get(TABLE_ATTR)
        joins: tuple[JoinSpecification, ...] = own.get(JOINS_ATTR, ())
        persisted = issubclass(record_type, Entity)

        if persisted and not table:
            raise MissingTableMetadata(
                f"Table declaration is not defined on [{type_name}]",
                {"type": type_name},
            )
        if not persisted and table:
            raise ConfigurationError(
                f"[{type_name}] declares table '{table}' but does not derive from Entity",
                {"type": type_name, "table": table},
            )

        join = None
        if not persisted:
            join = self._check_join(type_name, joins)

        try:
            hints = typing.get_type_hints(record_type)
        except NameError as e:
            raise UnsupportedColumnType(
                f"Cannot resolve field annotations of [{type_name}]: {e}",
                {"type": type_name},
            ) from e

        marked = [
            (f, f.metadata[COLUMN_MARKER])
            for f in dataclasses.fields(record_type)
            if COLUMN_MARKER in f.metadata
        ]
        own_key = next((spec.name or f.name for f, spec in marked if spec.primary_key), None)

        columns = []
        for f, spec in marked:
            kind = spec.kind if spec.kind is not None else resolve_kind(hints.get(f.name, f.type))
            if not isinstance(kind, ColumnKind):
                raise UnsupportedColumnType(
                    f"{f.name} in {table or type_name} is not in supported data type in SQLite",
                    {"type": type_name, "field": f.name, "annotation": repr(hints.get(f.name))},
                )

            name = spec.name or f.name
            if kind is ColumnKind.BLOB and spec.default is not None:
                raise UnsupportedDefaultForBlob(
                    f"SQLite does not support a default value for BLOB field {f.name}",
                    {"type": type_name, "field": f.name},
                )

            columns.append(
                ColumnDescriptor(
                    field_name=f.name,
                    name=name,
                    kind=kind,
                    nullable=not spec.not_null,
                    unique=spec.unique,
                    default=spec.default,
                    primary_key=spec.primary_key,
                    foreign_key=self._resolve_reference(spec, record_type, table, own_key),
                    alias=spec.alias,
                )
            )

        keys = [col for col in columns if col.primary_key]
        if persisted:
            if len(keys) != 1:
                raise InvalidPrimaryKey(
                    f"[{type_name}] must declare exactly one primary key, found {len(keys)}",
                    {"type": type_name, "keys": [col.name for col in keys]},
                )
            if keys[0].kind is not ColumnKind.INTEGER:
                raise InvalidPrimaryKey(
                    f"Primary key {keys[0].name} of [{type_name}] must be INTEGER",
                    {"type": type_name, "kind": keys[0].kind.value},
                )
        elif keys:
            raise InvalidPrimaryKey(
                f"Query type [{type_name}] cannot declare a primary key",
                {"type": type_name},
            )

        return EntityType(
            record_type=record_type,
            table=table,
            columns=tuple(columns),
            order_by=own.get(ORDER_BY_ATTR),
            join=join,
        )

    @staticmethod
    def _check_join(type_name: str, joins: tuple[JoinSpecification, ...]) -> JoinSpecification:
        if len(joins) != 1:
            raise NoJoinSpecification(
                f"Query type [{type_name}] needs exactly one join declaration, found {len(joins)}",
                {"type": type_name, "kinds": [spec.kind.name for spec in joins]},
            )

        spec = joins[0]
        if not spec.items:
            raise NoJoinSpecification(
                f"Join declaration on [{type_name}] names fewer than two tables",
                {"type": type_name, "kind": spec.kind.name},
            )
        if spec.kind.needs_condition:
            for item in spec.items:
                if not (item.first_column and item.second_table and item.second_column):
                    raise NoJoinSpecification(
                        f"{spec.kind.value} on [{type_name}] needs both join columns",
                        {"type": type_name, "item": repr(item)},
                    )
        return spec

    def _resolve_reference(
        self,
        spec: ColumnSpec,
        record_type: type,
        table: str | None,
        own_key: str | None,
    ) -> ForeignKeyRef | None:
        target = spec.references
        if target is None:
            return None
        if isinstance(target, (tuple, list)) and len(target) == 2:
            return ForeignKeyRef(str(target[0]), str(target[1]))
        if target is record_type:
            return ForeignKeyRef(table, own_key)
        if isinstance(target, type) and issubclass(target, Entity):
            referenced = self.describe(target)
            return ForeignKeyRef(referenced.table, referenced.primary_key.name)
        raise ConfigurationError(
            f"references must be an Entity subclass or a (table, column) pair, got {target!r}",
            {"type": record_type.__name__},
        )
