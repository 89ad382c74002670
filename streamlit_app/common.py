"""Shared helpers for the Streamlit admin app."""

import asyncio
from collections.abc import Coroutine
from datetime import datetime
from typing import Any, TypeVar

from app.core.config import configure_logging, settings
from app.db import session as db_session
from app.db.base import Base
from app.db.migrations import ensure_sqlite_schema
from app.db.store import DataStore, get_store

T = TypeVar("T")

configure_logging()
if settings.data_backend.strip().lower() == "sql":
    Base.metadata.create_all(bind=db_session.engine)
    ensure_sqlite_schema(db_session.engine)


def store() -> DataStore:
    return get_store()


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a service coroutine from Streamlit's synchronous script."""
    return asyncio.run(coro)


def now_string() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M")
