"""Order aggregation: list orders, fan out item queries, join client-side."""

from __future__ import annotations

import asyncio
import logging

from pydantic import ValidationError

from app.db.store import DataStore, DataStoreError, Query, Row
from app.schemas.order import OrderItemRead, OrderRead
from app.services.order_totals import calculate_subtotal, line_total

logger = logging.getLogger(__name__)

ORDER_COLUMNS: tuple[str, ...] = (
    "id",
    "order_token",
    "name",
    "phone",
    "email",
    "special_instructions",
    "payment_proof_url",
    "payment_method",
    "created_at",
    "delivery_fee",
    "total_amount",
)
ORDER_ITEM_COLUMNS: tuple[str, ...] = ("product_name", "price", "quantity")

__all__ = [
    "OrdersUnavailableError",
    "calculate_subtotal",
    "fetch_orders",
    "line_total",
]


class OrdersUnavailableError(Exception):
    """Raised when the order list itself cannot be fetched."""


def orders_query() -> Query:
    """All orders, newest first."""
    return Query("orders", ORDER_COLUMNS).order("created_at", descending=True)


def order_items_query(order_id: str) -> Query:
    return Query("order_items", ORDER_ITEM_COLUMNS).filter("order_id", order_id)


async def _fetch_items(store: DataStore, order_id: str) -> list[OrderItemRead]:
    """Fetch one order's lines; a failed query yields an empty list."""
    try:
        rows = await store.select(order_items_query(order_id))
        return [OrderItemRead.model_validate(row) for row in rows]
    except (DataStoreError, ValidationError) as exc:
        logger.warning("Items unavailable for order %s: %s", order_id, exc)
        return []


async def fetch_orders(store: DataStore) -> list[OrderRead]:
    """Fetch every order with its items, preserving newest-first order.

    Item queries run concurrently, one per order. Each result lands in the slot
    of its order, so completion order does not affect the output.
    """
    try:
        order_rows: list[Row] = await store.select(orders_query())
    except DataStoreError as exc:
        logger.error("Orders unavailable: %s", exc)
        raise OrdersUnavailableError("Failed to fetch orders") from exc

    slots: list[list[OrderItemRead]] = [[] for _ in order_rows]

    async def fill(index: int, order_id: str) -> None:
        slots[index] = await _fetch_items(store, order_id)

    await asyncio.gather(*(fill(index, str(row["id"])) for index, row in enumerate(order_rows)))

    try:
        orders = [OrderRead.model_validate({**row, "items": items}) for row, items in zip(order_rows, slots)]
    except ValidationError as exc:
        logger.error("Malformed order row: %s", exc)
        raise OrdersUnavailableError("Failed to fetch orders") from exc
    logger.debug("Fetched %d orders", len(orders))
    return orders
