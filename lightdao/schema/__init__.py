"""
Schema module: record type declarations and their cached metadata.

- declarations: the user-facing column/table/join markers and base classes
- utils: immutable descriptors (ColumnDescriptor, EntityType, JoinSpecification)
- registry: introspection and per-registry cache
"""

from .declarations import (
    Entity,
    Query,
    column,
    cross_join,
    inner_join,
    left_join,
    natural_join,
    order_by,
    table,
)
from .registry import Registry, resolve_kind
from .utils import (
    ColumnDescriptor,
    ColumnKind,
    EntityType,
    ForeignKeyRef,
    JoinItem,
    JoinKind,
    JoinSpecification,
)

__all__ = [
    "ColumnDescriptor",
    "ColumnKind",
    "Entity",
    "EntityType",
    "ForeignKeyRef",
    "JoinItem",
    "JoinKind",
    "JoinSpecification",
    "Query",
    "Registry",
    "column",
    "cross_join",
    "inner_join",
    "left_join",
    "natural_join",
    "order_by",
    "resolve_kind",
    "table",
]
