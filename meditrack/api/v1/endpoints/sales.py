# meditrack/api/v1/endpoints/sales.py
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from meditrack.api.v1.endpoints.auth import get_current_user
from meditrack.core.database import get_db
from meditrack.models.user import User
from meditrack.schemas.common import ApiResponse
from meditrack.schemas.sale import SaleCreate, SaleResponse
from meditrack.services import sale_service

router = APIRouter()


@router.get("", response_model=ApiResponse[list[SaleResponse]])
def list_sales(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[list[SaleResponse]]:
    """
    Sales history, newest first.
    """
    sales = sale_service.list_sales(db, limit=limit, offset=offset)
    return ApiResponse(data=[SaleResponse.model_validate(s) for s in sales])


@router.get("/{sale_id}", response_model=ApiResponse[SaleResponse])
def get_sale(
    sale_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[SaleResponse]:
    sale = sale_service.get_sale(db, sale_id=sale_id)
    return ApiResponse(data=SaleResponse.model_validate(sale))


@router.post(
    "",
    response_model=ApiResponse[SaleResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_sale(
    payload: SaleCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ApiResponse[SaleResponse]:
    """
    Check out a cart. Either every line is sold and stock is decremented,
    or nothing changes.
    """
    sale = sale_service.record_sale(
        db,
        items=payload.items,
        customer_name=payload.customer_name,
        actor=current_user,
    )
    return ApiResponse(data=SaleResponse.model_validate(sale), message="Sale recorded.")
