# meditrack/services/sale_service.py
from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from meditrack.core.config import get_settings
from meditrack.core.database import atomic
from meditrack.core.exceptions import (
    DrugNotFoundError,
    EmptyCartError,
    InsufficientStockError,
    NotFoundError,
)
from meditrack.models.drug import Drug
from meditrack.models.sale import SaleItem, SaleRecord
from meditrack.models.user import User
from meditrack.schemas.sale import SaleItemCreate
from meditrack.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


def resolve_customer_name(customer_name: str | None) -> str:
    if customer_name and customer_name.strip():
        return customer_name.strip()
    return get_settings().walk_in_customer_label


def record_sale(
    db: Session,
    *,
    items: list[SaleItemCreate],
    customer_name: str | None,
    actor: User,
) -> SaleRecord:
    """
    Validate a cart against live stock and persist the sale.

    All referenced drug rows are locked, in id order, before stock is
    checked. The sale record, its
    lines and every stock decrement commit together; any failure leaves
    stock untouched and writes no sale.

    A drug may appear on several lines; its stock must cover the sum.
    """
    if not items:
        raise EmptyCartError("The cart is empty.")

    requested: dict[UUID, int] = {}
    for item in items:
        requested[item.drug_id] = requested.get(item.drug_id, 0) + item.quantity

    with atomic(db):
        drugs = {
            drug.id: drug
            for drug in db.query(Drug)
            .filter(Drug.id.in_(list(requested)), Drug.is_deleted.is_(False))
            .order_by(Drug.id)
            .with_for_update()
            .all()
        }

        for drug_id, quantity in requested.items():
            drug = drugs.get(drug_id)
            if drug is None:
                raise DrugNotFoundError(f"Drug not found: {drug_id}", drug_id=str(drug_id))
            if drug.stock < quantity:
                logger.warning(
                    "Sale refused, insufficient stock drug=%s requested=%s available=%s by=%s",
                    drug.code,
                    quantity,
                    drug.stock,
                    actor.username,
                )
                raise InsufficientStockError(
                    f"Insufficient stock for {drug.name}: only {drug.stock} left.",
                    drug_id=str(drug_id),
                    available=drug.stock,
                    requested=quantity,
                )

        total_amount = Decimal("0")
        sale = SaleRecord(
            timestamp=utc_now(),
            cashier_id=actor.id,
            cashier_name=actor.name,
            customer_name=resolve_customer_name(customer_name),
        )
        for position, item in enumerate(items):
            drug = drugs[item.drug_id]
            price_at_sale = Decimal(drug.price)
            line_total = price_at_sale * item.quantity
            total_amount += line_total
            sale.items.append(
                SaleItem(
                    position=position,
                    drug_id=drug.id,
                    drug_name=drug.name,
                    quantity=item.quantity,
                    price_at_sale=price_at_sale,
                    total=line_total,
                )
            )
        sale.total_amount = total_amount
        db.add(sale)

        for drug_id, quantity in requested.items():
            drugs[drug_id].stock -= quantity

        db.flush()
        sale_id = sale.id

    logger.info(
        "Sale recorded id=%s lines=%s total=%s by=%s",
        sale_id,
        len(items),
        total_amount,
        actor.username,
    )
    return get_sale(db, sale_id=sale_id)


def get_sale(db: Session, *, sale_id: UUID) -> SaleRecord:
    sale = db.query(SaleRecord).filter(SaleRecord.id == sale_id).first()
    if not sale:
        raise NotFoundError("Sale not found.", sale_id=str(sale_id))
    return sale


def list_sales(db: Session, *, limit: int = 100, offset: int = 0) -> list[SaleRecord]:
    return (
        db.query(SaleRecord)
        .order_by(SaleRecord.timestamp.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
