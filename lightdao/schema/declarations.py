"""Declaration API for record types.

Record types are plain dataclasses. Persisted types derive from ``Entity`` and
carry ``@table``; read-only join types derive from ``Query`` and carry one
join decorator::

    @table("student")
    @order_by("age DESC")
    @dataclass
    class Student(Entity):
        teacher_id: int = column(not_null=True, references=Teacher)
        name: str = column(not_null=True)
        age: int | None = column(default="18")

Only fields created with ``column()`` are persisted.
"""

from dataclasses import dataclass, field
from typing import Any

from lightdao.utils.constants import ID_COLUMN, NOT_SAVED

from .utils import ColumnKind, JoinItem, JoinKind, JoinSpecification

COLUMN_MARKER = "lightdao.column"

TABLE_ATTR = "__lightdao_table__"
ORDER_BY_ATTR = "__lightdao_order_by__"
JOINS_ATTR = "__lightdao_joins__"


@dataclass(frozen=True)
class ColumnSpec:
    """Column marker as written by the user, before the registry resolves it."""

    name: str | None = None
    not_null: bool = False
    unique: bool = False
    default: str | None = None
    alias: str | None = None
    primary_key: bool = False
    references: Any = None
    kind: ColumnKind | None = None


def column(
    name: str | None = None,
    *,
    not_null: bool = False,
    unique: bool = False,
    default: str | None = None,
    alias: str | None = None,
    primary_key: bool = False,
    references: Any = None,
    kind: ColumnKind | None = None,
    value: Any = None,
) -> Any:
    """Declare a persisted field.

    Args:
        name: Physical column name (defaults to the field name)
        not_null: Render NOT NULL and reject None in strict marshaling
        unique: Render UNIQUE
        default: SQL default literal, rendered as DEFAULT '<default>'
        alias: Projection used by join queries, e.g. "student.name AS student_name"
        primary_key: Mark the auto-increment surrogate key
        references: Entity subclass or (table, column) pair for REFERENCES
        kind: Explicit ColumnKind, overriding the annotation
        value: Initial Python value of the field

    Returns:
        A dataclass field carrying the column marker.
    """
    spec = ColumnSpec(
        name=name,
        not_null=not_null,
        unique=unique,
        default=str(default) if default is not None else None,
        alias=alias,
        primary_key=primary_key,
        references=references,
        kind=kind,
    )
    return field(default=value, metadata={COLUMN_MARKER: spec})


def table(name: str):
    """Mark a persisted type and give its table name."""

    def decorator(cls):
        setattr(cls, TABLE_ATTR, name)
        return cls

    return decorator


def order_by(clause: str):
    """Default ORDER BY clause used when a query sets none."""

    def decorator(cls):
        setattr(cls, ORDER_BY_ATTR, clause)
        return cls

    return decorator


def _attach_join(cls, spec: JoinSpecification):
    joins = tuple(vars(cls).get(JOINS_ATTR, ()))
    setattr(cls, JOINS_ATTR, joins + (spec,))
    return cls


def inner_join(*items: JoinItem):
    """Chain of INNER JOINs, one JoinItem per link."""

    def decorator(cls):
        return _attach_join(cls, JoinSpecification(JoinKind.INNER, tuple(items)))

    return decorator


def left_join(*items: JoinItem):
    """Chain of LEFT JOINs, one JoinItem per link."""

    def decorator(cls):
        return _attach_join(cls, JoinSpecification(JoinKind.LEFT, tuple(items)))

    return decorator


def _table_chain(tables: tuple[str, ...]) -> tuple[JoinItem, ...]:
    return tuple(
        JoinItem(first_table=first, second_table=second)
        for first, second in zip(tables, tables[1:])
    )


def cross_join(*tables: str):
    """CROSS JOIN of the given tables, in order."""

    def decorator(cls):
        return _attach_join(cls, JoinSpecification(JoinKind.CROSS, _table_chain(tables)))

    return decorator


def natural_join(*tables: str):
    """NATURAL JOIN of the given tables, in order."""

    def decorator(cls):
        return _attach_join(cls, JoinSpecification(JoinKind.NATURAL, _table_chain(tables)))

    return decorator


@dataclass
class Query:
    """Base class of every record type.

    Subclassed directly by read-only join types.
    """


@dataclass
class Entity(Query):
    """Base class of persisted record types; provides the surrogate key."""

    id: int = column(ID_COLUMN, primary_key=True, value=NOT_SAVED)

    @property
    def is_saved(self) -> bool:
        return self.id not in (None, NOT_SAVED)
