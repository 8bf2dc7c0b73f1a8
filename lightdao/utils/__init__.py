"""lightdao utilities package."""

from .constants import (
    COUNT_COLUMN,
    ESCAPE_CHAR,
    ID_COLUMN,
    MAX_KEY,
    NOT_SAVED,
    SEQUENCE_RESET_THRESHOLD,
)

__all__ = [
    "COUNT_COLUMN",
    "ESCAPE_CHAR",
    "ID_COLUMN",
    "MAX_KEY",
    "NOT_SAVED",
    "SEQUENCE_RESET_THRESHOLD",
]
