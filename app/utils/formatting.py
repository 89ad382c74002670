"""Display helpers for dates and whole-unit currency amounts."""

from __future__ import annotations

from datetime import datetime

from app.core.config import settings


def format_order_date(value: datetime) -> str:
    """Format like `Jan 20, 2026, 05:10 AM` in the server's local time."""
    local_value = value.astimezone() if value.tzinfo else value
    return local_value.strftime("%b %d, %Y, %I:%M %p")


def format_amount(value: int) -> str:
    return f"{value} {settings.currency_label}"
