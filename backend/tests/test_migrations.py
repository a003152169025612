"""The initial migration must produce the same schema the models expect."""
import importlib.util
from pathlib import Path

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

from farecast.database import Base
import farecast.models  # noqa: F401

MIGRATION = Path(__file__).resolve().parents[1] / "alembic" / "versions" / "001_initial_schema.py"


def _load_migration():
    spec = importlib.util.spec_from_file_location("migration_001", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_initial_schema_matches_models():
    migration = _load_migration()
    engine = create_engine("sqlite:///:memory:")

    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            migration.upgrade()

        inspector = inspect(conn)
        for table in Base.metadata.sorted_tables:
            columns = {c["name"] for c in inspector.get_columns(table.name)}
            assert columns == {c.name for c in table.columns}

        unique = inspector.get_unique_constraints("seasonal_buckets")
        assert unique[0]["column_names"] == ["origin", "destination", "month"]


def test_downgrade_drops_tables():
    migration = _load_migration()
    engine = create_engine("sqlite:///:memory:")

    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            migration.upgrade()
            migration.downgrade()
        assert inspect(conn).get_table_names() == []
