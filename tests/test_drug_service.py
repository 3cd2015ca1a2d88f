from datetime import date, timedelta
from decimal import Decimal

import pytest

from meditrack.core.exceptions import (
    DuplicateCodeError,
    ForbiddenError,
    LockedError,
    NotFoundError,
)
from meditrack.schemas.drug import DrugUpdate
from meditrack.schemas.history import IntegerChange, load_changes
from meditrack.services import drug_service


def test_create_drug_records_creator(drug_factory, pharmacist):
    drug = drug_factory("D001")

    assert drug.is_deleted is False
    assert drug.is_locked is False
    assert drug.created_by == "Paul Pharmacist"
    assert drug.created_by_id == pharmacist.id
    assert drug.history == []


def test_duplicate_active_code_is_rejected(drug_factory):
    drug_factory("D001")

    with pytest.raises(DuplicateCodeError):
        drug_factory("D001", name="Another")


def test_code_can_be_reused_while_old_drug_is_in_recycle_bin(db, drug_factory, pharmacist):
    old = drug_factory("D001")
    drug_service.soft_delete_drug(db, drug_id=old.id, actor=pharmacist)

    new = drug_factory("D001", name="Replacement")

    assert new.id != old.id
    assert new.code == "D001"


def test_no_op_update_keeps_history(db, drug_factory, pharmacist):
    drug = drug_factory("D001")
    payload = DrugUpdate(
        name=drug.name,
        code=drug.code,
        stock=drug.stock,
        price=Decimal("10.00"),
        description="Test drug",
    )

    updated = drug_service.update_drug(db, drug_id=drug.id, payload=payload, actor=pharmacist)

    assert updated.history == []
    assert updated.stock == 50


def test_single_field_update_appends_one_entry(db, drug_factory, admin):
    drug = drug_factory("D001")

    updated = drug_service.update_drug(db, drug_id=drug.id, payload=DrugUpdate(stock=42), actor=admin)

    assert updated.stock == 42
    assert len(updated.history) == 1
    entry = updated.history[0]
    assert entry.version == 1
    assert entry.changed_by == "Alice Admin"
    assert load_changes(entry.changes) == [IntegerChange(field="stock", old_value=50, new_value=42)]


def test_history_is_newest_first(db, drug_factory, pharmacist):
    drug = drug_factory("D001")

    drug_service.update_drug(db, drug_id=drug.id, payload=DrugUpdate(stock=40), actor=pharmacist)
    updated = drug_service.update_drug(
        db, drug_id=drug.id, payload=DrugUpdate(name="Renamed", price=Decimal("12.50")), actor=pharmacist
    )

    assert [entry.version for entry in updated.history] == [2, 1]
    assert [c["field"] for c in updated.history[0].changes] == ["name", "price"]


def test_update_to_a_taken_code_is_rejected(db, drug_factory, pharmacist):
    drug_factory("D001")
    other = drug_factory("D002")

    with pytest.raises(DuplicateCodeError):
        drug_service.update_drug(db, drug_id=other.id, payload=DrugUpdate(code="D001"), actor=pharmacist)

    assert drug_service.get_drug(db, drug_id=other.id).history == []


def test_update_of_deleted_drug_is_not_found(db, drug_factory, pharmacist):
    drug = drug_factory("D001")
    drug_service.soft_delete_drug(db, drug_id=drug.id, actor=pharmacist)

    with pytest.raises(NotFoundError):
        drug_service.update_drug(db, drug_id=drug.id, payload=DrugUpdate(stock=1), actor=pharmacist)


def test_toggle_lock_requires_admin(db, drug_factory, pharmacist, admin):
    drug = drug_factory("D001")

    with pytest.raises(ForbiddenError):
        drug_service.toggle_lock(db, drug_id=drug.id, actor=pharmacist)

    assert drug_service.toggle_lock(db, drug_id=drug.id, actor=admin).is_locked is True
    assert drug_service.toggle_lock(db, drug_id=drug.id, actor=admin).is_locked is False


def test_lock_toggle_is_not_recorded_in_history(db, drug_factory, admin):
    drug = drug_factory("D001")

    locked = drug_service.toggle_lock(db, drug_id=drug.id, actor=admin)

    assert locked.history == []


def test_locked_drug_cannot_be_soft_deleted(db, drug_factory, admin, pharmacist):
    drug = drug_factory("D001")
    drug_service.toggle_lock(db, drug_id=drug.id, actor=admin)

    with pytest.raises(LockedError):
        drug_service.soft_delete_drug(db, drug_id=drug.id, actor=pharmacist)

    assert drug_service.get_drug(db, drug_id=drug.id).is_deleted is False


def test_soft_delete_then_restore_round_trips(db, drug_factory, pharmacist):
    drug = drug_factory("D001")
    drug_service.update_drug(db, drug_id=drug.id, payload=DrugUpdate(stock=7), actor=pharmacist)

    deleted = drug_service.soft_delete_drug(db, drug_id=drug.id, actor=pharmacist)
    assert deleted.is_deleted is True
    assert deleted.deleted_by == "Paul Pharmacist"
    assert deleted.deleted_at is not None
    assert [d.id for d in drug_service.list_drugs(db)] == []
    assert [d.id for d in drug_service.list_drugs(db, deleted=True)] == [drug.id]

    restored = drug_service.restore_drug(db, drug_id=drug.id)

    assert restored.is_deleted is False
    assert restored.deleted_at is None
    assert restored.deleted_by is None
    assert restored.stock == 7
    assert len(restored.history) == 1
    assert [d.id for d in drug_service.list_drugs(db)] == [drug.id]


def test_restore_fails_when_code_was_reused(db, drug_factory, pharmacist):
    old = drug_factory("D001")
    drug_service.soft_delete_drug(db, drug_id=old.id, actor=pharmacist)
    drug_factory("D001", name="Replacement")

    with pytest.raises(DuplicateCodeError):
        drug_service.restore_drug(db, drug_id=old.id)

    assert drug_service.get_drug(db, drug_id=old.id).is_deleted is True


def test_restore_of_active_drug_is_not_found(db, drug_factory):
    drug = drug_factory("D001")

    with pytest.raises(NotFoundError):
        drug_service.restore_drug(db, drug_id=drug.id)


def test_purge_is_permanent(db, drug_factory, pharmacist, admin):
    drug = drug_factory("D001")
    drug_service.update_drug(db, drug_id=drug.id, payload=DrugUpdate(stock=3), actor=pharmacist)
    drug_service.soft_delete_drug(db, drug_id=drug.id, actor=pharmacist)

    drug_service.purge_drug(db, drug_id=drug.id, actor=admin)

    with pytest.raises(NotFoundError):
        drug_service.get_drug(db, drug_id=drug.id)
    with pytest.raises(NotFoundError):
        drug_service.restore_drug(db, drug_id=drug.id)


def test_purge_requires_admin_and_deleted_partition(db, drug_factory, pharmacist, admin):
    drug = drug_factory("D001")

    with pytest.raises(NotFoundError):
        drug_service.purge_drug(db, drug_id=drug.id, actor=admin)

    drug_service.soft_delete_drug(db, drug_id=drug.id, actor=pharmacist)
    with pytest.raises(ForbiddenError):
        drug_service.purge_drug(db, drug_id=drug.id, actor=pharmacist)

    assert drug_service.get_drug(db, drug_id=drug.id).is_deleted is True


def test_list_drugs_search_and_category(db, drug_factory):
    drug_factory("D001", name="Paracetamol", category="Analgesic")
    drug_factory("D002", name="Amoxicillin", category="Antibiotic")
    drug_factory("X100", name="Ibuprofen", category="Analgesic")

    assert {d.code for d in drug_service.list_drugs(db, search="para")} == {"D001"}
    assert {d.code for d in drug_service.list_drugs(db, search="d00")} == {"D001", "D002"}
    assert {d.code for d in drug_service.list_drugs(db, category="Analgesic")} == {"D001", "X100"}


def test_low_stock_uses_each_drugs_threshold(db, drug_factory):
    drug_factory("D001", stock=5, min_stock_threshold=10)
    drug_factory("D002", stock=10, min_stock_threshold=10)
    drug_factory("D003", stock=2, min_stock_threshold=1)

    low = drug_service.list_low_stock(db)

    assert [d.code for d in low] == ["D001"]
    assert low[0].is_low_stock is True


def test_expiring_includes_expired_and_window(db, drug_factory):
    today = date(2030, 6, 1)
    drug_factory("D001", expiry_date=today - timedelta(days=1))
    drug_factory("D002", expiry_date=today + timedelta(days=30))
    drug_factory("D003", expiry_date=today + timedelta(days=200))

    expiring = drug_service.list_expiring(db, within_days=90, today=today)

    assert [d.code for d in expiring] == ["D001", "D002"]
