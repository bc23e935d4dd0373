"""
Settings API Endpoints - Administrator defaults used by the lifecycle core.

Implements:
- GET /api/v1/settings - Current settings
- PUT /api/v1/settings/cost-estimation - Update estimation ratio / warning threshold
"""
from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from boatyard.models import get_db
from boatyard.domain.services import SettingsService
from .dependencies import unwrap

router = APIRouter()


class CostEstimationUpdate(BaseModel):
    """Request model for cost estimation settings; both values are fractions 0..1."""
    default_ratio: Optional[Decimal] = None
    warn_threshold: Optional[Decimal] = None


@router.get("", summary="Get settings")
def get_settings(db: Session = Depends(get_db)):
    service = SettingsService(db)
    return {
        "cost_estimation": service.get_cost_estimation().to_dict(),
        "quote_validity_days": service.get_quote_validity_days(),
        "default_payment_terms": service.get_default_payment_terms(),
        "default_delivery_terms": service.get_default_delivery_terms(),
        "vat_rate": str(service.get_vat_rate()),
    }


@router.put("/cost-estimation", summary="Update cost estimation settings")
def update_cost_estimation(data: CostEstimationUpdate, db: Session = Depends(get_db)):
    result = SettingsService(db).update_cost_estimation(data.default_ratio, data.warn_threshold)
    return unwrap(result).to_dict()
