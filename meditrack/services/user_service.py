# meditrack/services/user_service.py
import logging

from sqlalchemy.orm import Session

from meditrack.core.database import atomic
from meditrack.core.exceptions import UsernameTakenError
from meditrack.core.security import get_password_hash
from meditrack.models.user import RoleName, User
from meditrack.schemas.user import UserCreate

logger = logging.getLogger(__name__)


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username).first()


def create_user(db: Session, user_in: UserCreate) -> User:
    """
    Create a staff account with a bcrypt-hashed password.
    """
    with atomic(db):
        if get_user_by_username(db, user_in.username):
            raise UsernameTakenError(f"Username '{user_in.username}' already exists.")

        user = User(
            username=user_in.username,
            name=user_in.name,
            role=user_in.role,
            hashed_password=get_password_hash(user_in.password),
        )
        db.add(user)
        db.flush()
        user_id = user.id

    logger.info("User created id=%s username=%s role=%s", user_id, user_in.username, user_in.role.value)
    return db.query(User).filter(User.id == user_id).one()


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.username.asc()).all()


def ensure_user(
    db: Session,
    *,
    username: str,
    password: str,
    name: str,
    role: RoleName,
) -> User:
    """
    Idempotent: return the existing account or create it.
    Used by the seed script.
    """
    existing = get_user_by_username(db, username)
    if existing:
        return existing
    return create_user(db, UserCreate(username=username, password=password, name=name, role=role))
