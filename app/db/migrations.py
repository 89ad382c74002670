"""Lightweight schema migrations for SQLite databases."""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

ORDER_AMOUNT_COLUMNS: tuple[str, ...] = ("delivery_fee", "total_amount")


def _sqlite_column_names(connection: Connection, table_name: str) -> set[str]:
    """Return column names for a SQLite table using PRAGMA table_info."""
    rows = connection.execute(text(f"PRAGMA table_info({table_name});")).mappings().all()
    return {str(row["name"]) for row in rows}


def ensure_sqlite_schema(engine: Engine) -> None:
    """Apply lightweight schema updates for legacy SQLite databases."""
    if engine.dialect.name != "sqlite":
        return

    with engine.begin() as connection:
        table_rows = connection.execute(text("SELECT name FROM sqlite_master WHERE type='table';")).all()
        table_names: set[str] = {str(row[0]) for row in table_rows}

        if "orders" not in table_names:
            return

        # Pickup orders carry no delivery fee; legacy rows default both amounts to 0.
        orders_columns = _sqlite_column_names(connection, "orders")
        for column_name in ORDER_AMOUNT_COLUMNS:
            if column_name not in orders_columns:
                connection.execute(
                    text(f"ALTER TABLE orders ADD COLUMN {column_name} INTEGER NOT NULL DEFAULT 0")
                )
                logger.info("[MIGRATE] added orders.%s", column_name)
