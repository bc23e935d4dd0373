"""
Amendment API Endpoints - Change control after order confirmation.

Implements:
- GET /api/v1/projects/{id}/amendments - Amendment history and total impact
- GET /api/v1/projects/{id}/amendments/eligibility - Whether amendments are possible
- POST /api/v1/projects/{id}/amendments - Request (and approve) an amendment
"""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from boatyard.models import get_db
from boatyard.domain.audit import AuditContext
from boatyard.domain.entities import AmendmentType
from boatyard.domain.services import AmendmentChanges, AmendmentService, ItemUpdate
from .configuration import ItemCreate
from .dependencies import get_audit_context, unwrap

router = APIRouter()


# =============================================================================
# Pydantic Models
# =============================================================================

class ItemChange(BaseModel):
    item_id: str
    updates: Dict[str, Any]


class AmendmentRequest(BaseModel):
    """Request model for an amendment."""
    type: AmendmentType
    reason: str = Field(..., max_length=1000, description="Why the configuration changes")
    items_to_add: List[ItemCreate] = Field(default_factory=list)
    items_to_remove: List[str] = Field(default_factory=list)
    items_to_update: List[ItemChange] = Field(default_factory=list)
    approver_id: Optional[str] = Field(None, description="Approving user; defaults to the requester")

    def to_changes(self) -> AmendmentChanges:
        return AmendmentChanges(
            items_to_add=[item.to_input() for item in self.items_to_add],
            items_to_remove=list(self.items_to_remove),
            items_to_update=[ItemUpdate(c.item_id, c.updates) for c in self.items_to_update],
        )


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/{project_id}/amendments", summary="List amendments of a project")
def list_amendments(project_id: str, db: Session = Depends(get_db)):
    service = AmendmentService(db)
    amendments = unwrap(service.get_amendments(project_id))
    total_impact = unwrap(service.get_total_price_impact(project_id))
    return {
        "amendments": [a.to_dict() for a in amendments],
        "total": len(amendments),
        "total_price_impact_excl_vat": str(total_impact),
    }


@router.get("/{project_id}/amendments/eligibility", summary="Check whether a project can be amended")
def amendment_eligibility(project_id: str, db: Session = Depends(get_db)):
    return unwrap(AmendmentService(db).can_amend(project_id)).to_dict()


@router.post("/{project_id}/amendments", status_code=status.HTTP_201_CREATED,
             summary="Request an amendment")
def request_amendment(
    project_id: str,
    data: AmendmentRequest,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    approver = AuditContext(user_id=data.approver_id, user_name=data.approver_id) if data.approver_id else None
    result = AmendmentService(db).request_amendment(
        project_id, data.type, data.reason, data.to_changes(), context, approver
    )
    return unwrap(result).to_dict()
