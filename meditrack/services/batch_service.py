# meditrack/services/batch_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.orm import Session

from meditrack.core.database import atomic
from meditrack.core.exceptions import AllLockedError, NoMatchError, PharmacyError
from meditrack.models.drug import Drug
from meditrack.models.user import User
from meditrack.schemas.batch import (
    BatchItemError,
    CategoryCriterion,
    CreatedDateCriterion,
    ManufacturerCriterion,
    SelectionCriterion,
)
from meditrack.schemas.drug import DrugCreate
from meditrack.services.drug_service import add_drug, mark_deleted
from meditrack.utils.datetime_utils import start_of_day_utc, utc_now

logger = logging.getLogger(__name__)


@dataclass
class BatchCreateOutcome:
    drugs: list[Drug] = field(default_factory=list)
    errors: list[BatchItemError] = field(default_factory=list)

    @property
    def created(self) -> int:
        return len(self.drugs)


@dataclass
class BatchDeleteOutcome:
    deleted: int
    skipped_locked: int
    locked_names: list[str]


def batch_create(db: Session, *, payloads: list[DrugCreate], actor: User) -> BatchCreateOutcome:
    """
    Create many drugs in one transaction.

    Items are applied in order; an item that fails a business rule (e.g. a
    code already used by an active drug, or by an earlier item of the same
    batch) is reported and skipped without affecting the others.
    """
    outcome = BatchCreateOutcome()

    with atomic(db):
        for index, payload in enumerate(payloads):
            try:
                drug = add_drug(db, payload=payload, actor=actor)
            except PharmacyError as exc:
                outcome.errors.append(
                    BatchItemError(index=index, code=payload.code, error=exc.error, message=exc.message)
                )
                continue
            outcome.drugs.append(drug)
        created_ids = [drug.id for drug in outcome.drugs]

    logger.info(
        "Batch create by=%s created=%s failed=%s",
        actor.username,
        len(created_ids),
        len(outcome.errors),
    )
    if created_ids:
        by_id = {drug.id: drug for drug in db.query(Drug).filter(Drug.id.in_(created_ids)).all()}
        outcome.drugs = [by_id[drug_id] for drug_id in created_ids]
    return outcome


def select_by_criterion(db: Session, criterion: SelectionCriterion) -> list[Drug]:
    """
    Active drugs matching one selection mode. Read-only and deterministic
    (ordered by creation time, then code).
    """
    query = db.query(Drug).filter(Drug.is_deleted.is_(False))

    if isinstance(criterion, CategoryCriterion):
        query = query.filter(Drug.category == criterion.category)
    elif isinstance(criterion, ManufacturerCriterion):
        query = query.filter(Drug.manufacturer == criterion.manufacturer)
    elif isinstance(criterion, CreatedDateCriterion):
        boundary = start_of_day_utc(criterion.day)
        if criterion.mode == "created_before":
            query = query.filter(Drug.created_at < boundary)
        else:
            query = query.filter(Drug.created_at > boundary)
    else:
        raise ValueError(f"Unsupported selection criterion: {criterion!r}")

    return query.order_by(Drug.created_at.asc(), Drug.code.asc()).all()


def batch_delete(db: Session, *, drug_ids: list[UUID], actor: User) -> BatchDeleteOutcome:
    """
    Soft-delete the unlocked drugs among `drug_ids`; locked ones are skipped.

    - NoMatch when none of the ids is an active drug.
    - AllLocked when every target is locked (nothing is changed).
    """
    with atomic(db):
        targets = (
            db.query(Drug)
            .filter(Drug.id.in_(list(set(drug_ids))), Drug.is_deleted.is_(False))
            .order_by(Drug.id)
            .with_for_update()
            .all()
        )
        if not targets:
            raise NoMatchError("No matching drugs found.")

        locked = [drug for drug in targets if drug.is_locked]
        unlocked = [drug for drug in targets if not drug.is_locked]
        if not unlocked:
            logger.warning("Batch delete refused, all %s targets locked by=%s", len(locked), actor.username)
            raise AllLockedError(
                f"Found {len(locked)} drugs but all of them are locked; nothing was deleted.",
                locked=len(locked),
            )

        now = utc_now()
        for drug in unlocked:
            mark_deleted(drug, actor, now)

        outcome = BatchDeleteOutcome(
            deleted=len(unlocked),
            skipped_locked=len(locked),
            locked_names=[drug.name for drug in locked],
        )

    logger.info(
        "Batch delete by=%s deleted=%s skipped_locked=%s",
        actor.username,
        outcome.deleted,
        outcome.skipped_locked,
    )
    return outcome


def batch_delete_by_criterion(db: Session, *, criterion: SelectionCriterion, actor: User) -> BatchDeleteOutcome:
    targets = select_by_criterion(db, criterion)
    if not targets:
        raise NoMatchError("No drugs match the selection.")
    return batch_delete(db, drug_ids=[drug.id for drug in targets], actor=actor)


def preview_targets(
    db: Session,
    *,
    drug_ids: list[UUID] | None = None,
    criterion: SelectionCriterion | None = None,
) -> list[Drug]:
    """Active drugs a batch delete would touch, locked ones included. Read-only."""
    if criterion is not None:
        return select_by_criterion(db, criterion)
    return (
        db.query(Drug)
        .filter(Drug.id.in_(list(set(drug_ids or []))), Drug.is_deleted.is_(False))
        .order_by(Drug.created_at.asc(), Drug.code.asc())
        .all()
    )
