"""lightdao - declarative record types over SQLite."""

__version__ = "0.1.0"

from lightdao.batch import BatchJobs, apply_batch
from lightdao.database import Database
from lightdao.exceptions import (
    BatchConsumed,
    ConfigurationError,
    DataError,
    LightDaoError,
    NotModifiable,
    QueryFailed,
)
from lightdao.helper import DatabaseHelper
from lightdao.query import ConditionBuilder, JoinConditionBuilder
from lightdao.schema import (
    Entity,
    JoinItem,
    Query,
    Registry,
    column,
    cross_join,
    inner_join,
    left_join,
    natural_join,
    order_by,
    table,
)
from lightdao.sql import SQLStatement

__all__ = [
    "BatchConsumed",
    "BatchJobs",
    "ConditionBuilder",
    "ConfigurationError",
    "DataError",
    "Database",
    "DatabaseHelper",
    "Entity",
    "JoinConditionBuilder",
    "JoinItem",
    "LightDaoError",
    "NotModifiable",
    "Query",
    "QueryFailed",
    "Registry",
    "SQLStatement",
    "apply_batch",
    "column",
    "cross_join",
    "inner_join",
    "left_join",
    "natural_join",
    "order_by",
    "table",
    "__version__",
]
