# schemas/bulk_import.py
from enum import Enum

from meditrack.schemas.batch import BatchCreateResult
from meditrack.schemas.common import CamelModel
from meditrack.schemas.drug import DrugCreate


class ImportLineError(str, Enum):
    INSUFFICIENT_FIELDS = "InsufficientFields"
    INVALID_NUMERIC = "InvalidNumeric"
    INVALID_DATE = "InvalidDate"
    INVALID_FIELD = "InvalidField"


class ImportLine(CamelModel):
    """Verdict for one non-blank line of a bulk import."""

    line_number: int
    raw: str
    is_valid: bool
    reason: ImportLineError | None = None
    message: str | None = None
    drug: DrugCreate | None = None


class BulkImportRequest(CamelModel):
    text: str


class BulkImportPreview(CamelModel):
    valid: int
    invalid: int
    lines: list[ImportLine]


class BulkImportResult(BulkImportPreview):
    batch: BatchCreateResult | None = None
