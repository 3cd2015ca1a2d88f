# meditrack/api/v1/endpoints/users.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from meditrack.core.database import get_db
from meditrack.dependencies.authz import require_roles
from meditrack.models.user import RoleName, User
from meditrack.schemas.common import ApiResponse
from meditrack.schemas.user import UserCreate, UserResponse
from meditrack.services.user_service import create_user, list_users

router = APIRouter()


@router.get("", response_model=ApiResponse[list[UserResponse]])
def list_staff(
    current_user: User = Depends(require_roles([RoleName.ADMIN])),
    db: Session = Depends(get_db),
) -> ApiResponse[list[UserResponse]]:
    users = list_users(db)
    return ApiResponse(data=[UserResponse.model_validate(u) for u in users])


@router.post(
    "",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_staff_user(
    payload: UserCreate,
    current_user: User = Depends(require_roles([RoleName.ADMIN])),
    db: Session = Depends(get_db),
) -> ApiResponse[UserResponse]:
    """
    Create a staff account with any role (admins only).
    """
    user = create_user(db, payload)
    return ApiResponse(data=UserResponse.model_validate(user), message="User created.")
