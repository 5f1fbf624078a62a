from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

_CENT = Decimal("0.01")


class NewPart(BaseModel):
    part_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    quantity: int = Field(ge=0)
    price: Decimal = Field(ge=0)

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("price")
    @classmethod
    def _quantize_price(cls, value: Decimal) -> Decimal:
        return value.quantize(_CENT)


class Part(BaseModel):
    id: str
    part_id: str
    name: str
    quantity: int = Field(ge=0)
    price: Decimal = Field(ge=0)
    image_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    user_id: str

    model_config = ConfigDict(from_attributes=True)

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value):
        if value is None:
            return value
        return str(value)

    @field_validator("price")
    @classmethod
    def _quantize_price(cls, value: Decimal) -> Decimal:
        return value.quantize(_CENT)

    @field_serializer("price")
    def _serialize_price(self, value: Decimal) -> float:
        return float(value)


class DashboardStats(BaseModel):
    total_parts: int = 0
    low_stock_count: int = 0
    recent_parts: List[Part] = Field(default_factory=list)


class StockUpdateRequest(BaseModel):
    # Raw form values; stock_rules decides what counts as a valid number.
    operation: str
    delta: Any = None


class PriceUpdateRequest(BaseModel):
    price: Any = None


__all__ = [
    "DashboardStats",
    "NewPart",
    "Part",
    "PriceUpdateRequest",
    "StockUpdateRequest",
]
