from crm_store.database import Store
from crm_store.migrations.registry import CRM_MIGRATIONS
from crm_store.migrations.runner import MigrationRunner, MigrationState, apply_if_absent
from crm_store.migrations.steps import AddColumn, AddTable


def run_migrations(store: Store) -> None:
    """Bring the schema up to date. Must finish before anything else uses the store."""
    MigrationRunner(CRM_MIGRATIONS).run(store)


__all__ = [
    "AddColumn",
    "AddTable",
    "CRM_MIGRATIONS",
    "MigrationRunner",
    "MigrationState",
    "apply_if_absent",
    "run_migrations",
]
