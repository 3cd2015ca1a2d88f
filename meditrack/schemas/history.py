# schemas/history.py
"""
Field-level change records for the drug audit trail.

A change is a tagged union keyed by `kind`, one variant per type of tracked
field, so old/new values keep their real types (Decimal prices, date expiry)
through comparison, storage as JSON and serialization to clients.
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import Field, TypeAdapter

from meditrack.schemas.common import CamelModel


class TextChange(CamelModel):
    kind: Literal["text"] = "text"
    field: str
    old_value: str | None = None
    new_value: str | None = None


class DecimalChange(CamelModel):
    kind: Literal["decimal"] = "decimal"
    field: str
    old_value: Decimal
    new_value: Decimal


class IntegerChange(CamelModel):
    kind: Literal["integer"] = "integer"
    field: str
    old_value: int
    new_value: int


class DateChange(CamelModel):
    kind: Literal["date"] = "date"
    field: str
    old_value: date
    new_value: date


FieldChange = Annotated[
    Union[TextChange, DecimalChange, IntegerChange, DateChange],
    Field(discriminator="kind"),
]

field_changes_adapter: TypeAdapter[list[FieldChange]] = TypeAdapter(list[FieldChange])


def dump_changes(changes: list[FieldChange]) -> list[dict]:
    """JSON-safe form stored in ModificationLog.changes."""
    return field_changes_adapter.dump_python(changes, mode="json")


def load_changes(raw: list[dict]) -> list[FieldChange]:
    return field_changes_adapter.validate_python(raw)


class ModificationLogResponse(CamelModel):
    version: int
    timestamp: datetime
    changed_by: str
    changes: list[FieldChange]
