"""Application settings helpers."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from app.db.store import DataStore, DataStoreError, Query, UniqueViolationError

logger = logging.getLogger(__name__)

SETTINGS_TABLE: str = "settings"
RESEND_API_KEY: str = "resend_api_key"
SETTING_DESCRIPTIONS: dict[str, str] = {RESEND_API_KEY: "API key for Resend email service"}


class SettingsSaveError(Exception):
    """Raised when a setting could not be persisted."""


async def load_setting(store: DataStore, key: str) -> str | None:
    """Return the stored value for `key`, or None when absent or unreadable."""
    try:
        rows = await store.select(Query(SETTINGS_TABLE, ("value",)).filter("key", key))
    except DataStoreError:
        logger.exception("Error loading setting %s", key)
        return None
    if not rows:
        return None
    return rows[0]["value"]


async def save_setting(
    store: DataStore,
    key: str,
    value: str,
    *,
    description: str | None = None,
) -> None:
    """Insert or update the setting for `key` in one upsert.

    The description is written only when the row is created. A concurrent
    insert that still trips the unique key is retried once as an update.
    """
    if not value.strip():
        raise ValueError("Setting value is required")

    now = datetime.now(timezone.utc)
    if description is None:
        description = SETTING_DESCRIPTIONS.get(key)
    record = {"key": key, "value": value, "description": description, "updated_at": now}
    try:
        await store.upsert(SETTINGS_TABLE, record, on_conflict="key", update_columns=("value", "updated_at"))
    except UniqueViolationError:
        logger.info("Setting %s was created concurrently; retrying as update", key)
        try:
            updated = await store.update(SETTINGS_TABLE, {"value": value, "updated_at": now}, {"key": key})
        except DataStoreError as exc:
            raise SettingsSaveError(f"Failed to save setting {key}") from exc
        if not updated:
            logger.error("Setting %s retry matched no row", key)
            raise SettingsSaveError(f"Failed to save setting {key}")
    except DataStoreError as exc:
        logger.exception("Error saving setting %s", key)
        raise SettingsSaveError(f"Failed to save setting {key}") from exc
    logger.info("Setting %s saved", key)
