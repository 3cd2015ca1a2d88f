# schemas/sale.py
from datetime import datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import Field, StringConstraints

from meditrack.schemas.common import CamelModel


class SaleItemCreate(CamelModel):
    drug_id: UUID
    quantity: int = Field(gt=0)


class SaleCreate(CamelModel):
    """
    A cart submitted at the till.

    An empty `items` list is accepted here; the sale engine reports it as
    EmptyCart.
    """

    items: list[SaleItemCreate] = []
    customer_name: Annotated[str, StringConstraints(strip_whitespace=True, max_length=255)] | None = None


class SaleItemResponse(CamelModel):
    drug_id: UUID
    drug_name: str
    quantity: int
    price_at_sale: Decimal
    total: Decimal


class SaleResponse(CamelModel):
    id: UUID
    timestamp: datetime
    items: list[SaleItemResponse]
    total_amount: Decimal
    cashier_name: str
    customer_name: str
