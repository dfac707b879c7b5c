from typing import Any

from pydantic import BaseModel, Field


class UserCredentials(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class ProductIn(BaseModel):
    productname: str = Field(min_length=1)
    description: str = Field(min_length=1)
    category: str = Field(min_length=1)
    price: float
    quantity: int = Field(ge=0)


class SaleRequest(BaseModel):
    product_id: int = Field(alias="productId")
    quantity: int

    @property
    def delta(self) -> int:
        return -self.quantity


class StockAdjustment(SaleRequest):
    # Only the exact string "add" increases stock; anything else subtracts.
    type: Any = None

    @property
    def delta(self) -> int:
        return self.quantity if self.type == "add" else -self.quantity
