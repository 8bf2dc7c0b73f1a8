"""Shared constants for lightdao.

Single source of truth for the surrogate key conventions and the engine
limits the query layer relies on.
"""

from pathlib import Path

# ============================================================================
# SURROGATE KEY
# ============================================================================

# Physical column name of every persisted type's primary key
ID_COLUMN = "_id"

# Key value of a record that has not been inserted yet
NOT_SAVED = 0

# Range of a 64-bit SQLite INTEGER; MAX_KEY also bounds primary keys
MAX_KEY = 2**63 - 1
MIN_INTEGER = -(2**63)

# sqlite_sequence is reset once it passes this mark on an unconditional delete
SEQUENCE_RESET_THRESHOLD = MAX_KEY // 4 * 3

# ============================================================================
# QUERY
# ============================================================================

COUNT_COLUMN = "count(*)"

# Escape prefix used by inline string literals (LIKE ... ESCAPE '/')
ESCAPE_CHAR = "/"

# ============================================================================
# CLI
# ============================================================================

ERROR_LOG_FILE = Path("./lightdao-error.log")
