# meditrack/models/drug.py
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from meditrack.models.base import Base
from meditrack.utils.datetime_utils import utc_now


class Drug(Base):
    """
    A catalog entry in the pharmacy's inventory.

    A drug lives in exactly one partition: active (is_deleted = false) or
    deleted (the recycle bin). Codes are unique among active drugs only, so a
    code can be reused while an older drug with it sits in the bin.
    """

    __tablename__ = "drugs"
    __table_args__ = (
        Index(
            "uq_drugs_active_code",
            "code",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = 0"),
        ),
    )

    # Primary Key
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    manufacturer: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    min_stock_threshold: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=10,
        server_default=text("10"),
        doc="Stock level below which the drug is reported as running low.",
    )
    expiry_date: Mapped[date] = mapped_column(Date, nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    side_effects: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Flags
    is_locked: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
        doc="Locked drugs cannot be deleted until an admin unlocks them.",
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
        index=True,
        doc="Soft delete flag. True while the drug sits in the recycle bin.",
    )

    # Provenance (actor names are snapshots taken at the time of the action)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
        index=True,
    )
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Deletion metadata, present only while soft-deleted
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    deleted_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Relationships
    history: Mapped[list["ModificationLog"]] = relationship(
        "ModificationLog",
        back_populates="drug",
        order_by="desc(ModificationLog.version)",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_low_stock(self) -> bool:
        return self.stock < self.min_stock_threshold


class ModificationLog(Base):
    """
    One immutable audit entry: who changed which tracked fields of a drug.

    `version` numbers the entries of a drug from 1; the unique constraint on
    (drug_id, version) makes two concurrent appends collide instead of
    silently interleaving.
    """

    __tablename__ = "drug_modification_logs"
    __table_args__ = (
        UniqueConstraint("drug_id", "version", name="uq_drug_modification_logs_version"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    drug_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("drugs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    changed_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    changed_by: Mapped[str] = mapped_column(String(100), nullable=False)

    changes: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        doc="JSON list of field changes, see meditrack.schemas.history.FieldChange",
    )

    drug: Mapped["Drug"] = relationship("Drug", back_populates="history")
