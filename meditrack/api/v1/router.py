# meditrack/api/v1/router.py
from fastapi import APIRouter

from meditrack.api.v1.endpoints import (
    auth,
    users,
    drugs,
    sales,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(drugs.router, prefix="/drugs", tags=["drugs"])
api_router.include_router(sales.router, prefix="/sales", tags=["sales"])
