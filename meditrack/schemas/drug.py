# schemas/drug.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any
from uuid import UUID

from pydantic import Field, StringConstraints, field_validator, model_validator

from meditrack.core.config import get_settings
from meditrack.schemas.common import CamelModel, OptText
from meditrack.schemas.history import ModificationLogResponse

CodeStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=50),
]

NameStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=255),
]

CategoryStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=100),
]

Price = Annotated[Decimal, Field(ge=0, max_digits=10, decimal_places=2)]
Quantity = Annotated[int, Field(ge=0)]

# Fields that must never be cleared by an update
REQUIRED_FIELDS = (
    "code",
    "name",
    "category",
    "manufacturer",
    "price",
    "stock",
    "min_stock_threshold",
    "expiry_date",
)


def _default_threshold() -> int:
    return get_settings().default_min_stock_threshold


class DrugBase(CamelModel):
    """
    Shared catalog fields for create/response.

    Empty optional texts from the UI are normalized to None.
    """

    code: CodeStr
    name: NameStr
    category: CategoryStr
    manufacturer: NameStr

    price: Price
    stock: Quantity
    min_stock_threshold: Quantity = Field(default_factory=_default_threshold)
    expiry_date: date

    description: OptText = None
    side_effects: OptText = None

    @field_validator("description", "side_effects", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class DrugCreate(DrugBase):
    """Used when creating a drug, singly, in a batch or from a bulk import."""

    is_locked: bool = False


class DrugUpdate(CamelModel):
    """
    Proposed new state for an edit (PUT).

    Only fields the client actually sends are applied and diffed; anything
    outside the tracked fields (ids, lock state, history) is ignored.
    """

    code: CodeStr | None = None
    name: NameStr | None = None
    category: CategoryStr | None = None
    manufacturer: NameStr | None = None

    price: Price | None = None
    stock: Quantity | None = None
    min_stock_threshold: Quantity | None = None
    expiry_date: date | None = None

    description: OptText = None
    side_effects: OptText = None

    @field_validator("description", "side_effects", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def reject_cleared_required_fields(self) -> "DrugUpdate":
        cleared = [
            name for name in REQUIRED_FIELDS if name in self.model_fields_set and getattr(self, name) is None
        ]
        if cleared:
            raise ValueError(f"These fields cannot be empty: {', '.join(cleared)}")
        return self

    def proposed_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class DrugResponse(DrugBase):
    id: UUID
    is_locked: bool
    is_deleted: bool
    is_low_stock: bool

    created_at: datetime
    created_by: str | None = None
    deleted_at: datetime | None = None
    deleted_by: str | None = None

    history: list[ModificationLogResponse] = []


class LockStateResponse(CamelModel):
    id: UUID
    is_locked: bool
