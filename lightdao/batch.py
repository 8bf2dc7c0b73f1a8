"""Batch job queue applied as one all-or-nothing transaction.

Jobs are rendered to parameterized statements as they are queued, so a bad
declaration fails at ``add_*`` time; engine errors surface in ``apply_batch``
and roll back the whole queue.
"""

import sqlite3
from collections.abc import Iterable, Mapping
from typing import Any

from lightdao.exceptions import BatchConsumed
from lightdao.schema.registry import Registry
from lightdao.sql import SQLStatement
from lightdao.statements import (
    build_delete_by_id_statement,
    build_delete_instance_statement,
    build_delete_statement,
    build_insert_statement,
    build_update_by_id_statement,
    build_update_instance_statement,
    build_update_statement,
)
from lightdao.utils.logging import logger


class BatchJobs:
    """Ordered queue of write statements.

    A queue is applied at most once; adding to or re-applying a consumed
    queue raises BatchConsumed.
    """

    def __init__(self, registry: Registry, strict: bool = False):
        self.registry = registry
        self.strict = strict
        self.jobs: list[SQLStatement] = []
        self.consumed = False

    def __len__(self) -> int:
        return len(self.jobs)

    def _add(self, stmt: SQLStatement) -> "BatchJobs":
        if self.consumed:
            raise BatchConsumed("Batch jobs were already applied; create a new BatchJobs")
        self.jobs.append(stmt)
        return self

    def add_insert_job(self, instances: Any) -> "BatchJobs":
        """Queue an INSERT for one record or each record of an iterable."""
        if isinstance(instances, Iterable) and not isinstance(instances, (str, bytes)):
            for instance in instances:
                self.add_insert_job(instance)
            return self

        entity = self.registry.describe(type(instances))
        return self._add(build_insert_statement(entity, instances, strict=self.strict))

    def add_update_job(self, record_type: type, key: int, values: Mapping[str, Any]) -> "BatchJobs":
        entity = self.registry.describe(record_type)
        return self._add(build_update_by_id_statement(entity, key, values))

    def add_update_instance_job(self, instance: Any) -> "BatchJobs":
        entity = self.registry.describe(type(instance))
        return self._add(build_update_instance_statement(entity, instance, strict=self.strict))

    def add_update_where_job(
        self, record_type: type, values: Mapping[str, Any], where: str | None, *where_args: Any
    ) -> "BatchJobs":
        entity = self.registry.describe(record_type)
        return self._add(build_update_statement(entity, values, where, where_args))

    def add_delete_job(self, instance: Any) -> "BatchJobs":
        entity = self.registry.describe(type(instance))
        return self._add(build_delete_instance_statement(entity, instance))

    def add_delete_by_id_job(self, record_type: type, key: int) -> "BatchJobs":
        entity = self.registry.describe(record_type)
        return self._add(build_delete_by_id_statement(entity, key))

    def add_delete_where_job(
        self, record_type: type, where: str | None = None, *where_args: Any
    ) -> "BatchJobs":
        entity = self.registry.describe(record_type)
        return self._add(build_delete_statement(entity, where, where_args))

    def add_sql_job(self, sql: str, *args: Any) -> "BatchJobs":
        """Queue a raw statement; it is checked by the engine only when applied."""
        return self._add(SQLStatement(sql, args))


def apply_batch(conn: sqlite3.Connection, jobs: BatchJobs) -> bool:
    """Run every queued job inside one transaction.

    Returns True when all jobs committed. On the first engine or binding
    error the transaction is rolled back, the failure is logged and False is
    returned. A connection that already has a transaction open is refused
    with False and the caller's transaction is left untouched. The queue is
    consumed either way.
    """
    if jobs.consumed:
        raise BatchConsumed("Batch jobs were already applied; create a new BatchJobs")
    jobs.consumed = True

    if not jobs.jobs:
        return True

    if conn.in_transaction:
        logger.error(
            f"Batch of {len(jobs.jobs)} jobs refused: connection already has an open transaction"
        )
        return False

    current = None
    try:
        conn.execute("BEGIN IMMEDIATE")
        for current in jobs.jobs:
            logger.debug(f"Batch SQL: {current.inline()}")
            conn.execute(current.sql, current.raw_args())
        conn.commit()
    except (sqlite3.Error, OverflowError) as e:
        if conn.in_transaction:
            conn.rollback()
        failed = current.inline() if current is not None else "BEGIN IMMEDIATE"
        logger.error(f"Batch of {len(jobs.jobs)} jobs rolled back at [{failed}]: {e}")
        return False
    except BaseException:
        if conn.in_transaction:
            conn.rollback()
        raise

    logger.debug(f"Batch of {len(jobs.jobs)} jobs committed")
    return True
