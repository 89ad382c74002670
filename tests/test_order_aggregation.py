"""Order aggregation tests: ordering, subtotals and per-order item failures."""

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.db.base import Base
from app.db.store import DataStore, DataStoreError, Query, SqlStore
from app.models.order import Order, OrderItem
from app.schemas.order import OrderItemRead
from app.services.order_service import OrdersUnavailableError, calculate_subtotal, fetch_orders, line_total


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _sql_store(tmp_path: Path, name: str) -> tuple[SqlStore, sessionmaker]:
    engine = _build_test_engine(tmp_path / name)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    return SqlStore(testing_session_local), testing_session_local


def _seed_orders(session_local: sessionmaker) -> None:
    now = datetime.now(timezone.utc)
    with session_local() as db:
        db.add_all(
            [
                Order(
                    id="order-b",
                    order_token="TOK-B",
                    name="Bilal",
                    phone="0300-1111111",
                    email="bilal@example.com",
                    payment_method="cash",
                    created_at=now - timedelta(hours=2),
                    delivery_fee=0,
                    total_amount=500,
                    items=[OrderItem(product_name="Chai", price=250, quantity=2)],
                ),
                Order(
                    id="order-a",
                    order_token="TOK-A",
                    name="Ayesha",
                    phone="0300-2222222",
                    email="ayesha@example.com",
                    special_instructions="Extra raita",
                    payment_method="bank_transfer",
                    payment_proof_url="https://files.example.com/proof-a.png",
                    created_at=now,
                    delivery_fee=300,
                    total_amount=1500,
                    items=[
                        OrderItem(product_name="Biryani", price=500, quantity=2),
                        OrderItem(product_name="Raita", price=200, quantity=1),
                    ],
                ),
            ]
        )
        db.commit()


class FailingItemsStore(SqlStore):
    """SqlStore whose item query fails for one order."""

    def __init__(self, session_factory, failing_order_id: str) -> None:
        super().__init__(session_factory)
        self.failing_order_id = failing_order_id

    async def select(self, query: Query):
        if query.table == "order_items" and ("order_id", self.failing_order_id) in query.filters:
            raise DataStoreError("connection reset", table=query.table)
        return await super().select(query)


class UnreachableStore(SqlStore):
    async def select(self, query: Query):
        raise DataStoreError("backend unreachable", table=query.table)


class SlowFirstStore(DataStore):
    """In-memory store where the first order's items arrive last."""

    def __init__(self) -> None:
        self.completed: list[str] = []

    async def select(self, query: Query):
        if query.table == "orders":
            return [
                {"id": "first", "order_token": "T1", "name": "First", "payment_method": "cash",
                 "created_at": "2026-01-20T10:00:00+00:00", "delivery_fee": 0, "total_amount": 100},
                {"id": "second", "order_token": "T2", "name": "Second", "payment_method": "cash",
                 "created_at": "2026-01-20T09:00:00+00:00", "delivery_fee": 0, "total_amount": 50},
            ]
        order_id = dict(query.filters)["order_id"]
        await asyncio.sleep(0.05 if order_id == "first" else 0)
        self.completed.append(order_id)
        return [{"product_name": f"{order_id}-dish", "price": 50, "quantity": 1}]

    async def insert(self, table, records):
        raise NotImplementedError

    async def update(self, table, patch, filters):
        raise NotImplementedError

    async def upsert(self, table, record, *, on_conflict, update_columns=None):
        raise NotImplementedError


def test_subtotal_does_not_depend_on_item_order() -> None:
    items = [
        OrderItemRead(product_name="Biryani", price=500, quantity=2),
        OrderItemRead(product_name="Raita", price=200, quantity=1),
        OrderItemRead(product_name="Naan", price=40, quantity=5),
    ]

    assert calculate_subtotal(items) == calculate_subtotal(list(reversed(items))) == 1400


def test_subtotal_of_no_items_is_zero() -> None:
    assert calculate_subtotal([]) == 0


def test_line_total_multiplies_price_and_quantity() -> None:
    assert line_total(OrderItemRead(product_name="Naan", price=40, quantity=5)) == 200


def test_fetch_orders_lists_newest_first(tmp_path: Path) -> None:
    store, session_local = _sql_store(tmp_path, "newest_first.db")
    _seed_orders(session_local)

    orders = asyncio.run(fetch_orders(store))

    assert [order.id for order in orders] == ["order-a", "order-b"]


def test_fetch_orders_trusts_stored_total(tmp_path: Path) -> None:
    store, session_local = _sql_store(tmp_path, "stored_total.db")
    _seed_orders(session_local)

    newest = asyncio.run(fetch_orders(store))[0]

    assert [(item.product_name, item.line_total) for item in newest.items] == [("Biryani", 1000), ("Raita", 200)]
    assert newest.subtotal == 1200
    assert newest.delivery_fee == 300
    assert newest.total_amount == 1500
    assert newest.payment_proof_url == "https://files.example.com/proof-a.png"


def test_fetch_orders_does_not_recompute_mismatched_total(tmp_path: Path) -> None:
    store, session_local = _sql_store(tmp_path, "mismatched_total.db")
    with session_local() as db:
        db.add(
            Order(
                id="legacy",
                order_token="TOK-L",
                name="Legacy",
                payment_method="cash",
                delivery_fee=300,
                total_amount=999,
                items=[OrderItem(product_name="Karahi", price=1200, quantity=1)],
            )
        )
        db.commit()

    (order,) = asyncio.run(fetch_orders(store))

    assert order.subtotal == 1200
    assert order.total_amount == 999


def test_failed_item_query_keeps_order_with_empty_items(tmp_path: Path) -> None:
    _, session_local = _sql_store(tmp_path, "item_failure.db")
    _seed_orders(session_local)
    store = FailingItemsStore(session_local, failing_order_id="order-a")

    orders = asyncio.run(fetch_orders(store))

    assert [order.id for order in orders] == ["order-a", "order-b"]
    assert orders[0].items == []
    assert orders[0].subtotal == 0
    assert orders[0].total_amount == 1500
    assert [item.product_name for item in orders[1].items] == ["Chai"]


def test_order_list_failure_raises_orders_unavailable(tmp_path: Path) -> None:
    _, session_local = _sql_store(tmp_path, "orders_failure.db")

    with pytest.raises(OrdersUnavailableError, match="Failed to fetch orders"):
        asyncio.run(fetch_orders(UnreachableStore(session_local)))


def test_fetch_orders_with_no_orders_returns_empty_list(tmp_path: Path) -> None:
    store, _ = _sql_store(tmp_path, "no_orders.db")

    assert asyncio.run(fetch_orders(store)) == []


def test_item_results_keep_order_position_regardless_of_completion() -> None:
    store = SlowFirstStore()

    orders = asyncio.run(fetch_orders(store))

    assert store.completed == ["second", "first"]
    assert [order.id for order in orders] == ["first", "second"]
    assert [order.items[0].product_name for order in orders] == ["first-dish", "second-dish"]


class StaticRowsStore(DataStore):
    """In-memory store returning fixed order rows and per-order item rows."""

    def __init__(self, order_rows: list[dict], item_rows: dict[str, list[dict]]) -> None:
        self.order_rows = order_rows
        self.item_rows = item_rows

    async def select(self, query: Query):
        if query.table == "orders":
            return self.order_rows
        return self.item_rows.get(dict(query.filters)["order_id"], [])

    async def insert(self, table, records):
        raise NotImplementedError

    async def update(self, table, patch, filters):
        raise NotImplementedError

    async def upsert(self, table, record, *, on_conflict, update_columns=None):
        raise NotImplementedError


def _order_row(order_id: str, **overrides) -> dict:
    row = {"id": order_id, "order_token": f"TOK-{order_id}", "name": order_id.title(), "payment_method": "cash",
           "created_at": "2026-01-20T10:00:00+00:00", "delivery_fee": 0, "total_amount": 100}
    row.update(overrides)
    return row


def test_malformed_item_row_empties_only_that_order() -> None:
    store = StaticRowsStore(
        [_order_row("good"), _order_row("bad")],
        {
            "good": [{"product_name": "Naan", "price": 40, "quantity": 2}],
            "bad": [{"product_name": "Lassi", "price": None, "quantity": 1}],
        },
    )

    orders = asyncio.run(fetch_orders(store))

    assert [order.id for order in orders] == ["good", "bad"]
    assert [item.line_total for item in orders[0].items] == [80]
    assert orders[1].items == []
    assert orders[1].subtotal == 0


def test_null_contact_fields_are_shown_blank() -> None:
    store = StaticRowsStore([_order_row("walk-in", phone=None, email=None, special_instructions=None)], {})

    (order,) = asyncio.run(fetch_orders(store))

    assert (order.phone, order.email, order.special_instructions) == ("", "", "")


def test_malformed_order_row_raises_orders_unavailable() -> None:
    store = StaticRowsStore([_order_row("good"), _order_row("broken", total_amount=None)], {})

    with pytest.raises(OrdersUnavailableError, match="Failed to fetch orders"):
        asyncio.run(fetch_orders(store))
