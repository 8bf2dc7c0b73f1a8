"""SQL statement buffer, literal escaping and SELECT rendering."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from lightdao.exceptions import UnsupportedBindArgument
from lightdao.utils.constants import ESCAPE_CHAR, MAX_KEY, MIN_INTEGER

# Order matters: the escape character itself is doubled before anything else
# receives an escape prefix.
_ESCAPED_CHARS = ("/", "[", "]", "%", "&", "_", "(", ")")


def escape_literal(value: Any) -> str:
    """Render ``value`` as an inline SQL literal.

    Strings are quoted and their LIKE-sensitive characters prefixed with
    ``/``, so the literal matches the original text under ``LIKE x ESCAPE '/'``.
    """
    if isinstance(value, bool):
        return "1" if value else "0"
    if value is None:
        return "NULL"
    if isinstance(value, str):
        escaped = value.replace("'", "''")
        for char in _ESCAPED_CHARS:
            escaped = escaped.replace(char, ESCAPE_CHAR + char)
        return f"'{escaped}'"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"X'{bytes(value).hex()}'"
    return str(value)


def unescape_literal(literal: str) -> str:
    """Invert ``escape_literal`` for a string literal."""
    if len(literal) < 2 or literal[0] != "'" or literal[-1] != "'":
        raise ValueError(f"Not a quoted string literal: {literal!r}")

    body = literal[1:-1].replace("''", "'")
    chars = []
    i = 0
    while i < len(body):
        if body[i] == ESCAPE_CHAR and i + 1 < len(body):
            i += 1
        chars.append(body[i])
        i += 1
    return "".join(chars)


def to_bind_arg(value: Any) -> str | int | float:
    """Convert a where argument to a driver-native scalar."""
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, int) and not MIN_INTEGER <= value <= MAX_KEY:
        raise UnsupportedBindArgument(
            f"{value} does not fit in a 64-bit SQLite INTEGER",
            {"value": repr(value), "type": "int"},
        )
    if isinstance(value, (str, int, float)):
        return value
    raise UnsupportedBindArgument(
        f"{value!r} is not supported as where argument in SQLite",
        {"value": repr(value), "type": type(value).__name__},
    )


@dataclass(frozen=True)
class SQLStatement:
    """A SQL template with ``?`` placeholders and its ordered bind arguments."""

    sql: str
    args: tuple = ()

    def __post_init__(self):
        if not isinstance(self.args, tuple):
            object.__setattr__(self, "args", tuple(self.args))

    @property
    def has_args(self) -> bool:
        return len(self.args) > 0

    def raw_args(self) -> tuple:
        """Arguments as given, for driver-level binding."""
        return self.args

    def escaped_args(self) -> list[str]:
        """Arguments as inline SQL literals."""
        return [escape_literal(arg) for arg in self.args]

    def inline(self) -> str:
        """Template with every placeholder replaced by its escaped literal.

        For logs and diagnostics; execution always binds ``raw_args()``.
        """
        parts = self.sql.split("?")
        if len(parts) - 1 != len(self.args):
            return self.sql
        rendered = [parts[0]]
        for literal, rest in zip(self.escaped_args(), parts[1:]):
            rendered.append(literal)
            rendered.append(rest)
        return "".join(rendered)

    def __str__(self) -> str:
        return self.inline()


def render_select(
    tables: str,
    columns: Sequence[str] | None = None,
    where: str | None = None,
    group_by: str | None = None,
    having: str | None = None,
    order_by: str | None = None,
    limit: tuple[int, int] | None = None,
    distinct: bool = False,
) -> str:
    """Build a SELECT query string.

    ``limit`` is an (offset, size) pair rendered as ``LIMIT offset,size``.
    """
    if having and not group_by:
        raise ValueError("HAVING clauses are only permitted when using a GROUP BY clause")

    query_parts = ["SELECT DISTINCT" if distinct else "SELECT"]
    query_parts.append(", ".join(columns) if columns else "*")
    query_parts.extend(["FROM", tables])

    if where:
        query_parts.extend(["WHERE", where])

    if group_by:
        query_parts.extend(["GROUP BY", group_by])

    if having:
        query_parts.extend(["HAVING", having])

    if order_by:
        query_parts.extend(["ORDER BY", order_by])

    if limit is not None:
        offset, size = limit
        query_parts.extend(["LIMIT", f"{offset},{size}"])

    return " ".join(query_parts)
