"""Versioned open: create or migrate on the schema version stored in the file."""

import sqlite3
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from lightdao.connection import transaction
from lightdao.database import Database
from lightdao.ddl import create_tables, migrate
from lightdao.exceptions import ConfigurationError, QueryFailed
from lightdao.schema.registry import Registry
from lightdao.utils.logging import logger


def read_user_version(conn: sqlite3.Connection) -> int:
    cursor = conn.execute("PRAGMA user_version")
    try:
        return int(cursor.fetchone()[0])
    finally:
        cursor.close()


class DatabaseHelper:
    """Opens a database for a fixed set of record types at a schema version.

    The version lives in ``PRAGMA user_version``. A new file (version 0) gets
    every table created; an older file is migrated additively; a newer file
    is refused.
    """

    def __init__(
        self,
        entities: Iterable[type],
        version: int,
        registry: Registry | None = None,
        config: dict[str, Any] | None = None,
    ):
        if version < 1:
            raise ValueError(f"Schema version must be >= 1, got {version}")
        self.entities = list(entities)
        self.version = version
        self.registry = registry or Registry()
        self.config = config

    def open(self, db_path: str | Path) -> Database:
        # Describe first so declaration errors surface before the file is touched
        described = self.registry.register(*self.entities)

        db = Database.open(db_path, registry=self.registry, config=self.config)
        try:
            current = read_user_version(db.conn)
            if current > self.version:
                raise ConfigurationError(
                    f"Database {db_path} is at schema version {current}, "
                    f"newer than {self.version}; downgrades are not supported",
                    {"path": str(db_path), "stored": current, "requested": self.version},
                )

            if current < self.version:
                try:
                    with transaction(db.conn):
                        if current == 0:
                            logger.info(f"Creating schema version {self.version} in {db_path}")
                            create_tables(db.conn, described)
                        else:
                            logger.info(
                                f"Upgrading {db_path} from schema version {current} to {self.version}"
                            )
                            migrate(db.conn, described)
                        db.conn.execute(f"PRAGMA user_version = {int(self.version)}")
                except sqlite3.Error as e:
                    raise QueryFailed(f"Schema setup of {db_path} failed: {e}") from e
        except BaseException:
            db.close()
            raise

        return db
