"""Order read schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from app.services import order_totals


class OrderItemRead(BaseModel):
    """Single order line."""

    product_name: str
    price: int = Field(ge=0)
    quantity: int = Field(ge=1)

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def line_total(self) -> int:
        return order_totals.line_total(self)


class OrderRead(BaseModel):
    """Order joined with its line items.

    `total_amount` is the stored value and is never recomputed here, so a
    historical order keeps the total it was placed with.
    """

    id: str
    order_token: str
    name: str
    phone: str = ""
    email: str = ""
    special_instructions: str = ""
    payment_proof_url: str | None = None
    payment_method: str
    created_at: datetime
    delivery_fee: int = Field(default=0, ge=0)
    total_amount: int = Field(default=0, ge=0)
    items: list[OrderItemRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    @field_validator("phone", "email", "special_instructions", mode="before")
    @classmethod
    def blank_when_missing(cls, value):
        return "" if value is None else value

    @computed_field
    @property
    def subtotal(self) -> int:
        return order_totals.calculate_subtotal(self.items)
