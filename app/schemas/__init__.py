"""Schema exports."""

from app.schemas.order import OrderItemRead, OrderRead
from app.schemas.setting import SettingRead, SettingUpdate

__all__ = [
    "OrderItemRead",
    "OrderRead",
    "SettingRead",
    "SettingUpdate",
]
