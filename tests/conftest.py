import os

# Must be set before meditrack modules read their settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from meditrack.core.database import get_db  # noqa: E402
from meditrack.core.security import get_password_hash  # noqa: E402
from meditrack.main import app  # noqa: E402
from meditrack.models.base import Base  # noqa: E402
from meditrack.models.user import RoleName, User  # noqa: E402
from meditrack.schemas.drug import DrugCreate  # noqa: E402
from meditrack.services.auth_service import issue_access_token_for_user  # noqa: E402
from meditrack.services.drug_service import create_drug  # noqa: E402

TEST_PASSWORD = "Secret@123"

# Shared by every fixture user
_TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def _make_user(db, username: str, name: str, role: RoleName) -> User:
    user = User(username=username, name=name, role=role, hashed_password=_TEST_PASSWORD_HASH)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def admin(db) -> User:
    return _make_user(db, "admin", "Alice Admin", RoleName.ADMIN)


@pytest.fixture()
def pharmacist(db) -> User:
    return _make_user(db, "pharma", "Paul Pharmacist", RoleName.PHARMACIST)


@pytest.fixture()
def drug_factory(db, pharmacist):
    """Create an active drug through the lifecycle service."""

    def make(code: str = "D001", **overrides):
        fields = {
            "code": code,
            "name": f"Drug {code}",
            "category": "Analgesic",
            "manufacturer": "Acme",
            "price": Decimal("10.00"),
            "stock": 50,
            "min_stock_threshold": 10,
            "expiry_date": date(2030, 1, 31),
            "description": "Test drug",
        }
        fields.update(overrides)
        actor = fields.pop("actor", pharmacist)
        return create_drug(db, payload=DrugCreate(**fields), actor=actor)

    return make


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_access_token_for_user(user)}"}


@pytest.fixture()
def admin_headers(admin) -> dict[str, str]:
    return auth_headers(admin)


@pytest.fixture()
def pharmacist_headers(pharmacist) -> dict[str, str]:
    return auth_headers(pharmacist)
