"""Application models package."""

from app.models.order import Order, OrderItem
from app.models.setting import Setting

__all__ = ["Order", "OrderItem", "Setting"]
