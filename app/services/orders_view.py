"""Session-scoped display state for the orders table."""

from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Any

SESSION_KEY: str = "orders_view"


@dataclass
class OrdersViewState:
    """Expand/collapse selector plus loading and error flags.

    At most one order is expanded at a time, tracked by a single id.
    """

    expanded_order_id: str | None = None
    loading: bool = False
    error: str | None = None

    def is_expanded(self, order_id: str) -> bool:
        return self.expanded_order_id == order_id

    def toggle(self, order_id: str) -> None:
        """Expand `order_id`, collapsing any other; collapse it if already expanded."""
        self.expanded_order_id = None if self.expanded_order_id == order_id else order_id

    def begin_fetch(self) -> None:
        self.loading = True
        self.error = None

    def finish_fetch(self, error: str | None = None) -> None:
        self.loading = False
        self.error = error

    @classmethod
    def from_session(cls, session: MutableMapping[str, Any]) -> OrdersViewState:
        raw = session.get(SESSION_KEY) or {}
        expanded = raw.get("expanded_order_id")
        return cls(expanded_order_id=str(expanded) if expanded else None)

    def save(self, session: MutableMapping[str, Any]) -> None:
        """Persist the selector; loading/error flags belong to one fetch cycle."""
        session[SESSION_KEY] = {"expanded_order_id": self.expanded_order_id}
