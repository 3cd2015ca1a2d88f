# schemas/batch.py
from __future__ import annotations

from datetime import date
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import Field, StringConstraints, model_validator

from meditrack.schemas.common import CamelModel
from meditrack.schemas.drug import DrugResponse

CriterionStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]


class CategoryCriterion(CamelModel):
    mode: Literal["category"] = "category"
    category: CriterionStr


class ManufacturerCriterion(CamelModel):
    mode: Literal["manufacturer"] = "manufacturer"
    manufacturer: CriterionStr


class CreatedDateCriterion(CamelModel):
    """
    Select by creation date. The boundary is midnight UTC at the start of
    `day`; both modes are strict comparisons against it.
    """

    mode: Literal["created_before", "created_after"]
    day: date


SelectionCriterion = Annotated[
    Union[CategoryCriterion, ManufacturerCriterion, CreatedDateCriterion],
    Field(discriminator="mode"),
]


class BatchDeleteRequest(CamelModel):
    """Either an explicit id list or a selection criterion, not both."""

    ids: list[UUID] | None = None
    criterion: SelectionCriterion | None = None

    @model_validator(mode="after")
    def exactly_one_target(self) -> "BatchDeleteRequest":
        if (self.ids is None) == (self.criterion is None):
            raise ValueError("Provide either ids or criterion")
        return self


class BatchDeleteResult(CamelModel):
    deleted: int
    skipped_locked: int
    locked_names: list[str] = []


class BatchDeletePreview(CamelModel):
    total: int
    deletable: int
    locked: int
    drugs: list[DrugResponse]


class BatchItemError(CamelModel):
    index: int
    code: str | None = None
    error: str
    message: str


class BatchCreateResult(CamelModel):
    created: int
    drugs: list[DrugResponse] = []
    errors: list[BatchItemError] = []
