"""Line and subtotal arithmetic for order display."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol


class PricedLine(Protocol):
    price: int
    quantity: int


def line_total(item: PricedLine) -> int:
    """Return price x quantity for one line."""
    return item.price * item.quantity


def calculate_subtotal(items: Iterable[PricedLine]) -> int:
    """Sum line totals, excluding delivery fee. Empty input gives 0."""
    return sum((line_total(item) for item in items), 0)
