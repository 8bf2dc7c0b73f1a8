"""Exceptions raised by lightdao.

Three families matter to callers:

- ConfigurationError: the record type declaration is wrong. Raised when a
  type is described or a builder is configured; fix the declaration.
- DataError: one operation received a value it cannot store, bind or read.
  Cached metadata is untouched and the operation can be retried.
- QueryFailed: the engine rejected a statement. The sqlite3 error is chained
  as ``__cause__``.
"""


class LightDaoError(Exception):
    """Base class for every lightdao error.

    Attributes:
        message: Human-readable error description
        details: Dict with the table, column or value involved
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# CONFIGURATION ERRORS
# ============================================================================


class ConfigurationError(LightDaoError):
    """Record type declaration error."""


class MissingTableMetadata(ConfigurationError):
    """Persisted type without its own ``@table`` declaration."""


class UnsupportedColumnType(ConfigurationError):
    """Column annotation that maps to no supported primitive kind."""


class UnsupportedDefaultForBlob(ConfigurationError):
    """BLOB column declared with a default literal."""


class NoJoinSpecification(ConfigurationError):
    """Query-only type without exactly one join declaration."""


class InvalidPrimaryKey(ConfigurationError):
    """Persisted type without exactly one INTEGER primary key."""


# ============================================================================
# DATA ERRORS
# ============================================================================


class DataError(LightDaoError):
    """Value-level error for a single operation."""


class NullableViolation(DataError):
    """None in a NOT NULL column during strict marshaling."""


class FieldCoercionError(DataError):
    """Row value cannot be converted to the field's declared kind."""


class UnsupportedBindArgument(DataError):
    """Where argument that is not a str, int, float or bool."""


class UnsavedRecord(DataError):
    """Key-based write against a record that was never inserted."""


# ============================================================================
# OPERATIONAL ERRORS
# ============================================================================


class NotModifiable(LightDaoError):
    """Update or delete on a join-backed, read-only type."""


class QueryFailed(LightDaoError):
    """The engine rejected a statement."""


class BatchConsumed(LightDaoError):
    """A batch job queue was reused after being applied."""
