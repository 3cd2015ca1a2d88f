# meditrack/models/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    Alembic's env.py and the test fixtures create the schema from this metadata.
    """

    pass
