# meditrack/services/change_diff.py
"""
Field-level diffing of drug records for the audit trail.

Only the tracked catalog fields are ever compared. Lock state, partition
flags and timestamps never end up in a drug's history.
"""
from typing import Any, Mapping

from meditrack.models.drug import Drug
from meditrack.schemas.history import (
    DateChange,
    DecimalChange,
    FieldChange,
    IntegerChange,
    TextChange,
)

# Tracked field -> change variant, in the order changes are reported
TRACKED_FIELDS: dict[str, type] = {
    "name": TextChange,
    "code": TextChange,
    "category": TextChange,
    "manufacturer": TextChange,
    "price": DecimalChange,
    "stock": IntegerChange,
    "min_stock_threshold": IntegerChange,
    "expiry_date": DateChange,
    "description": TextChange,
    "side_effects": TextChange,
}


def snapshot_drug(drug: Drug) -> dict[str, Any]:
    """Tracked-field values of a drug, keyed by field name."""
    return {field: getattr(drug, field) for field in TRACKED_FIELDS}


def diff_fields(previous: Mapping[str, Any], proposed: Mapping[str, Any]) -> list[FieldChange]:
    """
    Compare `proposed` against `previous` and return one change per tracked
    field whose value differs.

    - Keys missing from `proposed` are left alone (partial updates).
    - Keys outside TRACKED_FIELDS are ignored.
    - Comparison is plain `!=` on the typed values, so "10" and 10 differ.
    """
    changes: list[FieldChange] = []
    for field, variant in TRACKED_FIELDS.items():
        if field not in proposed:
            continue
        old_value = previous.get(field)
        new_value = proposed[field]
        if old_value != new_value:
            changes.append(variant(field=field, old_value=old_value, new_value=new_value))
    return changes
