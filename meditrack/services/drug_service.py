# meditrack/services/drug_service.py
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from meditrack.core.database import atomic
from meditrack.core.exceptions import (
    DuplicateCodeError,
    ForbiddenError,
    LockedError,
    NotFoundError,
)
from meditrack.models.drug import Drug, ModificationLog
from meditrack.models.user import User
from meditrack.schemas.drug import DrugCreate, DrugUpdate
from meditrack.schemas.history import dump_changes
from meditrack.services.change_diff import diff_fields, snapshot_drug
from meditrack.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


def _load_drug(
    db: Session,
    drug_id: UUID,
    *,
    deleted: bool,
    for_update: bool = False,
) -> Drug:
    """
    Fetch a drug from one partition (active or deleted).

    With `for_update`, the row stays locked until the surrounding
    transaction ends, which serializes read-modify-write cycles per drug.
    """
    query = db.query(Drug).filter(Drug.id == drug_id, Drug.is_deleted.is_(deleted))
    if for_update:
        query = query.with_for_update()
    drug = query.first()
    if not drug:
        where = "recycle bin" if deleted else "inventory"
        raise NotFoundError(f"Drug not found in {where}.", drug_id=str(drug_id))
    return drug


def _reload_drug(db: Session, drug_id: UUID) -> Drug:
    """
    Re-query after commit so callers get a fresh, attached object.
    """
    drug = db.query(Drug).filter(Drug.id == drug_id).first()
    if not drug:
        raise NotFoundError("Drug not found.", drug_id=str(drug_id))
    return drug


def ensure_code_available(db: Session, code: str, *, exclude_id: UUID | None = None) -> None:
    """Raise DuplicateCodeError if an active drug (other than exclude_id) uses `code`."""
    query = db.query(Drug.id).filter(Drug.code == code, Drug.is_deleted.is_(False))
    if exclude_id is not None:
        query = query.filter(Drug.id != exclude_id)
    if query.first() is not None:
        raise DuplicateCodeError(f"Drug code '{code}' is already in use.", code=code)


def require_admin(actor: User, action: str) -> None:
    if not actor.is_admin:
        logger.warning("Forbidden: user=%s role=%s tried to %s", actor.username, actor.role.value, action)
        raise ForbiddenError(f"Only administrators can {action}.")


def mark_deleted(drug: Drug, actor: User, when: datetime) -> None:
    """Move an active drug into the recycle bin. Nothing else on the row changes."""
    drug.is_deleted = True
    drug.deleted_at = when
    drug.deleted_by_id = actor.id
    drug.deleted_by = actor.name


def add_drug(db: Session, *, payload: DrugCreate, actor: User) -> Drug:
    """
    Insert a new active drug inside the caller's transaction (no commit).
    Shared by single and batch creation.
    """
    ensure_code_available(db, payload.code)

    drug = Drug(
        **payload.model_dump(),
        created_at=utc_now(),
        created_by_id=actor.id,
        created_by=actor.name,
    )
    db.add(drug)
    db.flush()
    return drug


def create_drug(db: Session, *, payload: DrugCreate, actor: User) -> Drug:
    with atomic(db):
        drug = add_drug(db, payload=payload, actor=actor)
        drug_id = drug.id

    logger.info("Drug created id=%s code=%s by=%s", drug_id, payload.code, actor.username)
    return _reload_drug(db, drug_id)


def update_drug(db: Session, *, drug_id: UUID, payload: DrugUpdate, actor: User) -> Drug:
    """
    Apply an edit to an active drug and record it in the drug's history.

    The diff runs against the locked current row. An edit that changes
    nothing writes nothing and leaves the history untouched.
    """
    with atomic(db):
        drug = _load_drug(db, drug_id, deleted=False, for_update=True)
        changes = diff_fields(snapshot_drug(drug), payload.proposed_fields())
        if not changes:
            logger.info("Drug update without changes id=%s by=%s", drug_id, actor.username)
            return drug

        if any(change.field == "code" for change in changes):
            ensure_code_available(db, payload.code, exclude_id=drug.id)

        for change in changes:
            setattr(drug, change.field, change.new_value)

        next_version = drug.history[0].version + 1 if drug.history else 1
        drug.history.insert(
            0,
            ModificationLog(
                version=next_version,
                timestamp=utc_now(),
                changed_by_id=actor.id,
                changed_by=actor.name,
                changes=dump_changes(changes),
            ),
        )
        db.flush()

    logger.info(
        "Drug updated id=%s by=%s fields=%s",
        drug_id,
        actor.username,
        ",".join(change.field for change in changes),
    )
    return _reload_drug(db, drug_id)


def toggle_lock(db: Session, *, drug_id: UUID, actor: User) -> Drug:
    """Flip the deletion lock of an active drug. Admins only; last writer wins."""
    require_admin(actor, "change the lock state")

    with atomic(db):
        drug = _load_drug(db, drug_id, deleted=False, for_update=True)
        drug.is_locked = not drug.is_locked
        locked = drug.is_locked

    logger.info("Drug lock toggled id=%s locked=%s by=%s", drug_id, locked, actor.username)
    return _reload_drug(db, drug_id)


def soft_delete_drug(db: Session, *, drug_id: UUID, actor: User) -> Drug:
    with atomic(db):
        drug = _load_drug(db, drug_id, deleted=False, for_update=True)
        if drug.is_locked:
            logger.warning("Delete refused, drug locked id=%s by=%s", drug_id, actor.username)
            raise LockedError(f"'{drug.name}' is locked and cannot be deleted.", drug_id=str(drug_id))
        mark_deleted(drug, actor, utc_now())

    logger.info("Drug moved to recycle bin id=%s by=%s", drug_id, actor.username)
    return _reload_drug(db, drug_id)


def restore_drug(db: Session, *, drug_id: UUID) -> Drug:
    """
    Bring a drug back from the recycle bin with its history intact.

    Fails with DuplicateCode if another active drug took the code meanwhile.
    """
    with atomic(db):
        drug = _load_drug(db, drug_id, deleted=True, for_update=True)
        ensure_code_available(db, drug.code, exclude_id=drug.id)
        drug.is_deleted = False
        drug.deleted_at = None
        drug.deleted_by_id = None
        drug.deleted_by = None

    logger.info("Drug restored id=%s", drug_id)
    return _reload_drug(db, drug_id)


def purge_drug(db: Session, *, drug_id: UUID, actor: User) -> None:
    """Permanently remove a drug (and its history) from the recycle bin. Admins only."""
    require_admin(actor, "permanently delete drugs")

    with atomic(db):
        drug = _load_drug(db, drug_id, deleted=True, for_update=True)
        db.delete(drug)

    logger.info("Drug purged id=%s by=%s", drug_id, actor.username)


def get_drug(db: Session, *, drug_id: UUID) -> Drug:
    """A drug from either partition."""
    return _reload_drug(db, drug_id)


def list_drugs(
    db: Session,
    *,
    deleted: bool = False,
    search: str | None = None,
    category: str | None = None,
) -> list[Drug]:
    query = db.query(Drug).filter(Drug.is_deleted.is_(deleted))

    if category:
        query = query.filter(Drug.category == category)

    if search and search.strip():
        search_term = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Drug.name.ilike(search_term),
                Drug.code.ilike(search_term),
            )
        )

    if deleted:
        return query.order_by(Drug.deleted_at.desc()).all()
    return query.order_by(Drug.created_at.desc()).all()


def list_low_stock(db: Session) -> list[Drug]:
    """Active drugs whose stock is below their own threshold, scarcest first."""
    return (
        db.query(Drug)
        .filter(Drug.is_deleted.is_(False), Drug.stock < Drug.min_stock_threshold)
        .order_by(Drug.stock.asc(), Drug.code.asc())
        .all()
    )


def list_expiring(db: Session, *, within_days: int, today: date | None = None) -> list[Drug]:
    """Active drugs expiring within `within_days` (already expired ones included)."""
    horizon = (today or date.today()) + timedelta(days=within_days)
    return (
        db.query(Drug)
        .filter(Drug.is_deleted.is_(False), Drug.expiry_date <= horizon)
        .order_by(Drug.expiry_date.asc(), Drug.code.asc())
        .all()
    )
