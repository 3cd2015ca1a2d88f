# meditrack/api/v1/endpoints/drugs.py
from __future__ import annotations

import logging
from io import StringIO
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from meditrack.api.v1.endpoints.auth import get_current_user
from meditrack.core.config import get_settings
from meditrack.core.database import get_db
from meditrack.core.exceptions import ConfirmationRequiredError
from meditrack.models.user import User
from meditrack.schemas.batch import (
    BatchCreateResult,
    BatchDeletePreview,
    BatchDeleteRequest,
    BatchDeleteResult,
)
from meditrack.schemas.bulk_import import BulkImportPreview, BulkImportRequest, BulkImportResult
from meditrack.schemas.common import ApiResponse
from meditrack.schemas.drug import DrugCreate, DrugResponse, DrugUpdate, LockStateResponse
from meditrack.services import batch_service, drug_service
from meditrack.services.bulk_import import parse_bulk_text, valid_payloads
from meditrack.utils.datetime_utils import utc_now
from meditrack.utils.drug_export import drugs_to_csv

router = APIRouter()
logger = logging.getLogger(__name__)


def _batch_create_result(outcome: batch_service.BatchCreateOutcome) -> BatchCreateResult:
    return BatchCreateResult(
        created=outcome.created,
        drugs=[DrugResponse.model_validate(d) for d in outcome.drugs],
        errors=outcome.errors,
    )


def _batch_delete_result(outcome: batch_service.BatchDeleteOutcome) -> BatchDeleteResult:
    return BatchDeleteResult(
        deleted=outcome.deleted,
        skipped_locked=outcome.skipped_locked,
        locked_names=outcome.locked_names,
    )


# ---------------------------------------------------------------------------
# Collection routes (declared before /{drug_id})
# ---------------------------------------------------------------------------


@router.get("", response_model=ApiResponse[list[DrugResponse]])
def list_drugs(
    deleted: bool = Query(False, description="List the recycle bin instead of the inventory"),
    search: Optional[str] = Query(None, description="Search by name or code (case-insensitive)"),
    category: Optional[str] = Query(None, description="Exact category filter"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[list[DrugResponse]]:
    drugs = drug_service.list_drugs(db, deleted=deleted, search=search, category=category)
    return ApiResponse(data=[DrugResponse.model_validate(d) for d in drugs])


@router.post(
    "",
    response_model=ApiResponse[DrugResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_drug(
    payload: DrugCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[DrugResponse]:
    drug = drug_service.create_drug(db, payload=payload, actor=current_user)
    return ApiResponse(data=DrugResponse.model_validate(drug), message="Drug created.")


@router.post("/batch", response_model=ApiResponse[BatchCreateResult])
def create_drugs_batch(
    payloads: list[DrugCreate],
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[BatchCreateResult]:
    """
    Create several drugs at once. Items that fail (e.g. duplicate code) are
    reported in `errors` and do not block the others.
    """
    outcome = batch_service.batch_create(db, payloads=payloads, actor=current_user)
    return ApiResponse(
        data=_batch_create_result(outcome),
        message=f"Created {outcome.created} of {len(payloads)} drugs.",
    )


@router.post("/batch-delete/preview", response_model=ApiResponse[BatchDeletePreview])
def preview_batch_delete(
    payload: BatchDeleteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[BatchDeletePreview]:
    drugs = batch_service.preview_targets(db, drug_ids=payload.ids, criterion=payload.criterion)
    locked = sum(1 for d in drugs if d.is_locked)
    return ApiResponse(
        data=BatchDeletePreview(
            total=len(drugs),
            deletable=len(drugs) - locked,
            locked=locked,
            drugs=[DrugResponse.model_validate(d) for d in drugs],
        )
    )


@router.post("/batch-delete", response_model=ApiResponse[BatchDeleteResult])
def batch_delete(
    payload: BatchDeleteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[BatchDeleteResult]:
    """
    Move many drugs to the recycle bin, by id list or by selection criterion.
    Locked drugs are skipped and listed in the result.
    """
    if payload.criterion is not None:
        outcome = batch_service.batch_delete_by_criterion(db, criterion=payload.criterion, actor=current_user)
    else:
        outcome = batch_service.batch_delete(db, drug_ids=payload.ids, actor=current_user)

    message = f"Moved {outcome.deleted} drugs to the recycle bin."
    if outcome.skipped_locked:
        message += f" Skipped {outcome.skipped_locked} locked drugs."
    return ApiResponse(data=_batch_delete_result(outcome), message=message)


@router.get("/alerts/low-stock", response_model=ApiResponse[list[DrugResponse]])
def low_stock_alerts(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[list[DrugResponse]]:
    drugs = drug_service.list_low_stock(db)
    return ApiResponse(data=[DrugResponse.model_validate(d) for d in drugs])


@router.get("/alerts/expiring", response_model=ApiResponse[list[DrugResponse]])
def expiring_alerts(
    days: Optional[int] = Query(None, ge=0, description="Look-ahead window in days"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[list[DrugResponse]]:
    within_days = days if days is not None else get_settings().expiry_warning_days
    drugs = drug_service.list_expiring(db, within_days=within_days)
    return ApiResponse(data=[DrugResponse.model_validate(d) for d in drugs])


@router.post("/import/preview", response_model=ApiResponse[BulkImportPreview])
def preview_import(
    payload: BulkImportRequest,
    current_user: User = Depends(get_current_user),
) -> ApiResponse[BulkImportPreview]:
    lines = parse_bulk_text(payload.text)
    valid = sum(1 for line in lines if line.is_valid)
    return ApiResponse(data=BulkImportPreview(valid=valid, invalid=len(lines) - valid, lines=lines))


@router.post("/import", response_model=ApiResponse[BulkImportResult])
def import_drugs(
    payload: BulkImportRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[BulkImportResult]:
    """
    Parse pasted text and batch-create the valid lines. Invalid lines are
    returned with their reasons and are not imported.
    """
    lines = parse_bulk_text(payload.text)
    payloads = valid_payloads(lines)

    batch = None
    if payloads:
        batch = _batch_create_result(batch_service.batch_create(db, payloads=payloads, actor=current_user))

    logger.info(
        "Bulk import by=%s lines=%s valid=%s created=%s",
        current_user.username,
        len(lines),
        len(payloads),
        batch.created if batch else 0,
    )
    return ApiResponse(
        data=BulkImportResult(
            valid=len(payloads),
            invalid=len(lines) - len(payloads),
            lines=lines,
            batch=batch,
        )
    )


@router.get("/export/csv")
def export_drugs_csv(
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Export the active inventory to CSV.
    """
    drugs = drug_service.list_drugs(db, search=search, category=category)
    output = StringIO(drugs_to_csv(drugs))

    filename = f"drugs_export_{utc_now().strftime('%Y%m%d_%H%M%S')}.csv"
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------------------------------------------------------------------------
# Single-drug routes
# ---------------------------------------------------------------------------


@router.get("/{drug_id}", response_model=ApiResponse[DrugResponse])
def get_drug(
    drug_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[DrugResponse]:
    drug = drug_service.get_drug(db, drug_id=drug_id)
    return ApiResponse(data=DrugResponse.model_validate(drug))


@router.put("/{drug_id}", response_model=ApiResponse[DrugResponse])
def update_drug(
    drug_id: UUID,
    payload: DrugUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[DrugResponse]:
    """
    Edit an active drug. Changed fields are recorded as a new history entry;
    an edit that changes nothing leaves the history as it was.
    """
    drug = drug_service.update_drug(db, drug_id=drug_id, payload=payload, actor=current_user)
    return ApiResponse(data=DrugResponse.model_validate(drug), message="Drug updated.")


@router.post("/{drug_id}/toggle-lock", response_model=ApiResponse[LockStateResponse])
def toggle_drug_lock(
    drug_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[LockStateResponse]:
    drug = drug_service.toggle_lock(db, drug_id=drug_id, actor=current_user)
    message = "Drug locked." if drug.is_locked else "Drug unlocked."
    return ApiResponse(data=LockStateResponse.model_validate(drug), message=message)


@router.delete("/{drug_id}", response_model=ApiResponse[DrugResponse])
def delete_drug(
    drug_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[DrugResponse]:
    drug = drug_service.soft_delete_drug(db, drug_id=drug_id, actor=current_user)
    return ApiResponse(data=DrugResponse.model_validate(drug), message="Drug moved to the recycle bin.")


@router.post("/{drug_id}/restore", response_model=ApiResponse[DrugResponse])
def restore_drug(
    drug_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[DrugResponse]:
    drug = drug_service.restore_drug(db, drug_id=drug_id)
    return ApiResponse(data=DrugResponse.model_validate(drug), message="Drug restored.")


@router.delete("/{drug_id}/permanent", response_model=ApiResponse[None])
def purge_drug(
    drug_id: UUID,
    confirm: bool = Query(False, description="Must be true; permanent deletion cannot be undone"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[None]:
    if not confirm:
        raise ConfirmationRequiredError("Permanent deletion requires confirm=true.")
    drug_service.purge_drug(db, drug_id=drug_id, actor=current_user)
    return ApiResponse(message="Drug permanently deleted.")
