# meditrack/models/user.py
import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import DateTime, Enum, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from meditrack.models.base import Base
from meditrack.utils.datetime_utils import utc_now


class RoleName(str, PyEnum):
    ADMIN = "admin"
    PHARMACIST = "pharmacist"


class User(Base):
    """
    A member of the pharmacy staff.

    - admin: may toggle drug locks and purge deleted drugs.
    - pharmacist: every other inventory and sales operation.
    """

    __tablename__ = "users"

    # Primary Key
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Authentication
    username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    # Display name, snapshotted into audit entries and sales
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    role: Mapped[RoleName] = mapped_column(
        Enum(RoleName, name="user_role_enum", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=RoleName.PHARMACIST,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN
