import logging

from sqlalchemy.orm import Session

from meditrack.core.exceptions import AuthenticationFailedError
from meditrack.core.security import create_access_token, verify_password
from meditrack.models.user import User
from meditrack.services.user_service import get_user_by_username

logger = logging.getLogger(__name__)


def authenticate_user(db: Session, username: str, password: str) -> User:
    """
    Check a username/password pair. The same error is raised for an unknown
    user and a wrong password.
    """
    user = get_user_by_username(db, username)
    if not user or not verify_password(password, user.hashed_password):
        logger.warning("Failed login for username=%s", username)
        raise AuthenticationFailedError("Invalid username or password.")
    return user


def issue_access_token_for_user(user: User) -> str:
    return create_access_token(subject=str(user.id), role=user.role.value, name=user.name)
