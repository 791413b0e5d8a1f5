import os
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect


def _run_migrations(database_url: str):
    os.environ["DATABASE_URL"] = database_url
    config = Config("alembic.ini")
    config.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(config, "head")


def test_migrations_create_reporting_schema(tmp_path: Path):
    database_url = f"sqlite+pysqlite:///{tmp_path / 'migrations.db'}"
    _run_migrations(database_url)

    engine = create_engine(database_url, future=True)
    inspector = inspect(engine)
    assert {"shops", "products", "sales", "sale_items", "expenses", "cash_entries"} <= set(
        inspector.get_table_names()
    )

    sales_indexes = {index["name"] for index in inspector.get_indexes("sales")}
    assert {"ix_sales_shop_date_id", "ix_sales_shop_status_date"} <= sales_indexes
    cash_indexes = {index["name"] for index in inspector.get_indexes("cash_entries")}
    assert "ix_cash_entries_shop_created_id" in cash_indexes
    engine.dispose()
