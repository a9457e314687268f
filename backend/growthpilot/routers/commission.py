"""
Commission router
-----------------
Previews the commission a model would produce for given revenue figures,
so the client settings form can show the amount before saving.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from growthpilot import models
from growthpilot.deps import get_current_user
from growthpilot.errors import MetricsValidationError
from growthpilot.schemas import CommissionPreviewRequest, CommissionPreviewResponse
from growthpilot.services.commission import (
    CommissionModelInput,
    RevenueInput,
    calculate_commission_with_model,
)

router = APIRouter(prefix="/commission", tags=["commission"])


@router.post("/preview", response_model=CommissionPreviewResponse)
def preview_commission(
    payload: CommissionPreviewRequest,
    current_user: models.User = Depends(get_current_user),
):
    revenue = RevenueInput(
        sales_revenue=payload.revenue.sales_revenue,
        total_revenue=payload.revenue.total_revenue,
    )
    model = CommissionModelInput(
        commission_percentage=payload.model.commission_percentage,
        calculation_basis=payload.model.calculation_basis,
    )
    try:
        commission = calculate_commission_with_model(revenue, model)
    except MetricsValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return CommissionPreviewResponse(commission=commission)
