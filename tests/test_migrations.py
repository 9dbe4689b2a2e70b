from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

ROOT = Path(__file__).resolve().parent.parent


def _config(url):
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "migrations"))
    config.set_main_option("sqlalchemy.url", url)
    return config


def test_upgrade_creates_schema_and_downgrade_removes_it(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    config = _config(url)

    command.upgrade(config, "head")

    engine = create_engine(url)
    inspector = inspect(engine)
    assert {"users", "tables", "menu_items", "orders", "order_items", "bills"} <= set(inspector.get_table_names())
    bill_columns = {column["name"] for column in inspector.get_columns("bills")}
    assert {"bill_number", "version", "total_amount", "change_amount"} <= bill_columns

    command.downgrade(config, "base")

    assert "orders" not in inspect(engine).get_table_names()
    engine.dispose()
