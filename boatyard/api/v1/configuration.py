"""
Configuration API Endpoints - Direct edits while the project is editable.

Implements:
- POST /api/v1/projects/{id}/configuration/items - Add an item
- PATCH /api/v1/projects/{id}/configuration/items/{item_id} - Update editable fields
- DELETE /api/v1/projects/{id}/configuration/items/{item_id} - Remove an item
- POST /api/v1/projects/{id}/configuration/items/{item_id}/move - Move up or down
- PUT /api/v1/projects/{id}/configuration/order - Apply a full ordering
- PUT /api/v1/projects/{id}/configuration/discount - Set the discount
- PUT /api/v1/projects/{id}/configuration/propulsion - Set the propulsion type

Edits on a frozen configuration return 409; use the amendments endpoint.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from boatyard.models import get_db
from boatyard.domain.audit import AuditContext
from boatyard.domain.entities import ConfigurationItemInput, ConfigurationItemType, PropulsionType
from boatyard.domain.services import ConfigurationService
from .dependencies import get_audit_context, unwrap

router = APIRouter()


# =============================================================================
# Pydantic Models
# =============================================================================

class ItemCreate(BaseModel):
    """Request model for adding a configuration item."""
    name: str = Field(..., max_length=255)
    quantity: Decimal = Field(..., description="Ordered quantity")
    unit_price_excl_vat: Decimal = Field(..., description="Sell price per unit excl. VAT")
    unit: str = Field("pcs", max_length=20)
    category: str = Field("General", max_length=100)
    item_type: ConfigurationItemType = ConfigurationItemType.CUSTOM
    description: Optional[str] = None
    article_number: Optional[str] = Field(None, max_length=64)
    unit_cost: Optional[Decimal] = Field(None, description="Actual supplier cost per unit")
    supplier: Optional[str] = None
    lead_time_days: Optional[int] = Field(None, ge=0)
    is_included: bool = True
    ce_relevant: bool = False
    safety_critical: bool = False

    def to_input(self) -> ConfigurationItemInput:
        return ConfigurationItemInput(**self.model_dump())


class MoveRequest(BaseModel):
    direction: str = Field(..., pattern="^(up|down)$")


class OrderRequest(BaseModel):
    item_ids: List[str]


class DiscountRequest(BaseModel):
    discount_percent: Optional[Decimal] = None


class PropulsionRequest(BaseModel):
    propulsion_type: PropulsionType


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/{project_id}/configuration/items", status_code=status.HTTP_201_CREATED,
             summary="Add a configuration item")
def add_item(
    project_id: str,
    data: ItemCreate,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    project = unwrap(ConfigurationService(db).add_item(project_id, data.to_input(), context))
    return project.configuration.to_dict()


@router.patch("/{project_id}/configuration/items/{item_id}", summary="Update a configuration item")
def update_item(
    project_id: str,
    item_id: str,
    updates: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    """Only editable fields are accepted; line totals are always recomputed."""
    project = unwrap(ConfigurationService(db).update_item(project_id, item_id, updates, context))
    return project.configuration.to_dict()


@router.delete("/{project_id}/configuration/items/{item_id}", summary="Remove a configuration item")
def remove_item(
    project_id: str,
    item_id: str,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    project = unwrap(ConfigurationService(db).remove_item(project_id, item_id, context))
    return project.configuration.to_dict()


@router.post("/{project_id}/configuration/items/{item_id}/move", summary="Move an item up or down")
def move_item(
    project_id: str,
    item_id: str,
    data: MoveRequest,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    project = unwrap(ConfigurationService(db).move_item(project_id, item_id, data.direction, context))
    return project.configuration.to_dict()


@router.put("/{project_id}/configuration/order", summary="Reorder all items")
def reorder_items(
    project_id: str,
    data: OrderRequest,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    project = unwrap(ConfigurationService(db).reorder_items(project_id, data.item_ids, context))
    return project.configuration.to_dict()


@router.put("/{project_id}/configuration/discount", summary="Set the configuration discount")
def set_discount(
    project_id: str,
    data: DiscountRequest,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    project = unwrap(ConfigurationService(db).set_discount(project_id, data.discount_percent, context))
    return project.configuration.to_dict()


@router.put("/{project_id}/configuration/propulsion", summary="Set the propulsion type")
def set_propulsion(
    project_id: str,
    data: PropulsionRequest,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    project = unwrap(ConfigurationService(db).set_propulsion_type(project_id, data.propulsion_type, context))
    return project.configuration.to_dict()


@router.get("/{project_id}/configuration/snapshots", summary="List configuration snapshots")
def list_snapshots(project_id: str, db: Session = Depends(get_db)):
    snapshots = unwrap(ConfigurationService(db).get_snapshots(project_id))
    return {
        "snapshots": [s.to_dict() for s in snapshots],
        "total": len(snapshots),
    }
