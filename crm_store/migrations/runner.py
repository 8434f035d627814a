"""
Schema migration runner.
Applies additive steps in declared order, checking the live schema before each one.
"""
import logging
from enum import Enum
from typing import List, Optional, Sequence, Union

from crm_store.database import Store
from crm_store.exceptions import MigrationFailedException
from crm_store.migrations.steps import AddColumn, AddTable

logger = logging.getLogger("crm_store.migrations")

MigrationStep = Union[AddColumn, AddTable]


class MigrationState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


def is_satisfied(store: Store, step: MigrationStep) -> Optional[bool]:
    """
    Introspect the schema for a step.

    Returns:
        True if the target already exists, False if it must be applied,
        None if the step cannot apply (its table is missing)
    """
    if isinstance(step, AddTable):
        return store.table_exists(step.table)

    if isinstance(step, AddColumn):
        if not store.table_exists(step.table):
            return None
        return step.column in store.get_table_columns(step.table)

    raise TypeError(f"Unknown migration step: {step!r}")


def apply_if_absent(store: Store, step: MigrationStep) -> bool:
    """Apply a step unless the schema already has it. Returns True if DDL ran."""
    satisfied = is_satisfied(store, step)

    if satisfied is None:
        logger.warning(f"Table '{step.table}' doesn't exist, skipping {step.name}")
        return False

    if satisfied:
        logger.info(f"{step.name}: already applied")
        return False

    sql = step.ddl()
    logger.info(f"Applying {step.name}")
    logger.debug(f"SQL: {sql}")
    store.execute(sql)
    logger.info(f"✓ {step.name}")
    return True


class MigrationRunner:
    """Runs an ordered list of steps. A failure is terminal."""

    def __init__(self, steps: Sequence[MigrationStep]):
        self.steps = list(steps)
        self.state = MigrationState.PENDING
        self.applied: List[str] = []

    def run(self, store: Store) -> int:
        """
        Apply all pending steps.

        Returns:
            Number of steps that issued DDL

        Raises:
            MigrationFailedException: a step failed; later steps were not attempted
        """
        if self.state == MigrationState.FAILED:
            raise RuntimeError("Migration runner already failed; start a new one after fixing the schema")

        self.state = MigrationState.RUNNING
        self.applied = []
        logger.info("Starting schema migration...")

        for step in self.steps:
            try:
                if apply_if_absent(store, step):
                    self.applied.append(step.name)
            except Exception as e:
                self.state = MigrationState.FAILED
                logger.error(f"✗ Migration failed at '{step.name}': {e}")
                raise MigrationFailedException(step.name, e) from e

        self.state = MigrationState.COMPLETED
        if self.applied:
            logger.info(f"✓ Migration completed: {len(self.applied)} step(s) applied")
        else:
            logger.info("✓ Schema is up to date - no migrations needed")
        return len(self.applied)
