import logging

from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from meditrack.core.config import get_settings
from meditrack.core.database import get_db
from meditrack.core.exceptions import PharmacyError
from meditrack.api.v1.router import api_router
from meditrack.models.drug import Drug
from meditrack.models.sale import SaleRecord
from meditrack.models.user import User
from meditrack.schemas.common import failure_body

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="MediTrack Pharmacy Backend",
)


@app.exception_handler(PharmacyError)
async def pharmacy_error_handler(request: Request, exc: PharmacyError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=failure_body(exc.message, error=exc.error, data=exc.context or None),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=failure_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=failure_body(
            "Request validation failed.",
            error="ValidationError",
            data=jsonable_encoder(exc.errors()),
        ),
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=failure_body("A database error occurred.", error="DatabaseError"),
    )


@app.get("/health", tags=["health"])
def root_health(db: Session = Depends(get_db)) -> dict:
    """
    Global health check endpoint with inventory counts.
    """
    active = db.query(Drug).filter(Drug.is_deleted.is_(False)).count()
    deleted = db.query(Drug).filter(Drug.is_deleted.is_(True)).count()
    return {
        "success": True,
        "status": "ok",
        "data": {
            "users": db.query(User).count(),
            "drugs": active,
            "deletedDrugs": deleted,
            "sales": db.query(SaleRecord).count(),
        },
    }


# Mount versioned API router
app.include_router(api_router, prefix=settings.api_v1_prefix)
