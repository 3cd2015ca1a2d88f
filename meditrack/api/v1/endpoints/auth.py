from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from meditrack.core.config import get_settings
from meditrack.core.database import get_db
from meditrack.core.security import decode_token
from meditrack.models.user import RoleName, User
from meditrack.schemas.common import ApiResponse
from meditrack.schemas.user import RegisterRequest, TokenResponse, UserCreate, UserResponse
from meditrack.services.auth_service import authenticate_user, issue_access_token_for_user
from meditrack.services.user_service import create_user

router = APIRouter()

settings = get_settings()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_v1_prefix}/auth/login")


@router.post("/login", response_model=TokenResponse)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
) -> TokenResponse:
    """
    OAuth2-style login with username + password.
    """
    user = authenticate_user(db, form_data.username, form_data.password)
    token = issue_access_token_for_user(user)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post(
    "/register",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
) -> ApiResponse[UserResponse]:
    """
    Self-registration. New accounts are always pharmacists; admins are
    created by another admin (POST /users) or by the seed script.
    """
    user = create_user(
        db,
        UserCreate(
            username=payload.username,
            name=payload.name,
            password=payload.password,
            role=RoleName.PHARMACIST,
        ),
    )
    return ApiResponse(data=UserResponse.model_validate(user), message="Registration successful.")


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Dependency to retrieve the current user from a JWT bearer token.
    """
    try:
        payload = decode_token(token)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user = db.query(User).filter(User.id == UUID(user_id)).first()
    except ValueError:
        user = None
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


@router.get("/me", response_model=ApiResponse[UserResponse])
def read_current_user(
    current_user: User = Depends(get_current_user),
) -> ApiResponse[UserResponse]:
    """
    Return the current authenticated user.
    """
    return ApiResponse(data=UserResponse.model_validate(current_user))
