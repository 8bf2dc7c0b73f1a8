"""Connection setup and explicit transaction boundaries."""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from lightdao.config_runtime import load_runtime_config
from lightdao.exceptions import QueryFailed
from lightdao.utils.logging import logger


def connect(db_path: str | Path, config: dict[str, Any] | None = None) -> sqlite3.Connection:
    """Open a connection configured for lightdao.

    The connection runs in autocommit mode (``isolation_level=None``) so
    the only transactions are the ones opened by ``transaction()``. Rows are
    returned as ``sqlite3.Row``.
    """
    cfg = (config or load_runtime_config())["connection"]

    conn = sqlite3.connect(
        str(db_path),
        timeout=cfg["timeout"],
        isolation_level=None,
        check_same_thread=cfg["check_same_thread"],
    )
    conn.row_factory = sqlite3.Row

    if cfg["journal_mode"]:
        conn.execute(f"PRAGMA journal_mode={cfg['journal_mode']}")
    if cfg["synchronous"]:
        conn.execute(f"PRAGMA synchronous={cfg['synchronous']}")
    conn.execute(f"PRAGMA foreign_keys = {'ON' if cfg['foreign_keys'] else 'OFF'}")

    logger.debug(f"Opened database {db_path}")
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """BEGIN IMMEDIATE ... COMMIT; ROLLBACK when the block raises.

    Joins the caller's transaction when one is already open.
    """
    if conn.in_transaction:
        yield conn
        return

    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        try:
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise QueryFailed(f"Failed to commit database changes: {e}") from e
