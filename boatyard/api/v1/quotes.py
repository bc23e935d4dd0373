"""
Quote API Endpoints - Draft, send, answer and revise quotes.

Implements:
- GET /api/v1/projects/{id}/quotes - List quote versions
- POST /api/v1/projects/{id}/quotes - Create a draft from the configuration
- PATCH /api/v1/projects/{id}/quotes/{quote_id} - Edit a draft
- POST /api/v1/projects/{id}/quotes/{quote_id}/send|accept|reject
- POST /api/v1/projects/{id}/quotes/{quote_id}/new-version - Revise a quote
- POST /api/v1/projects/{id}/quotes/expire - Expire overdue sent quotes
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from boatyard.models import get_db
from boatyard.domain.audit import AuditContext
from boatyard.domain.entities import QuoteLine
from boatyard.domain.services import QuoteDraftOptions, QuoteService
from .dependencies import get_audit_context, unwrap

router = APIRouter()


# =============================================================================
# Pydantic Models
# =============================================================================

class QuoteCreate(BaseModel):
    """Request model for creating a draft quote."""
    validity_days: Optional[int] = Field(None, gt=0)
    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    delivery_weeks: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class QuoteLineData(BaseModel):
    description: str
    quantity: Decimal
    unit_price_excl_vat: Decimal
    unit: str = "pcs"
    category: str = "General"
    configuration_item_id: Optional[str] = None
    is_optional: bool = False


class QuoteUpdate(BaseModel):
    """Request model for editing a draft; omitted fields stay unchanged."""
    lines: Optional[List[QuoteLineData]] = None
    discount_percent: Optional[Decimal] = None
    valid_until: Optional[date] = None
    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    delivery_weeks: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None

    def to_updates(self) -> dict:
        updates = self.model_dump(exclude_unset=True, exclude={"lines"})
        if self.lines is not None:
            updates["lines"] = [QuoteLine.create(**line.model_dump()) for line in self.lines]
        return updates


class ExpireRequest(BaseModel):
    today: Optional[date] = None


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/{project_id}/quotes", summary="List quotes of a project")
def list_quotes(project_id: str, db: Session = Depends(get_db)):
    quotes = unwrap(QuoteService(db).get_quotes(project_id))
    return {"quotes": [q.to_dict() for q in quotes], "total": len(quotes)}


@router.post("/{project_id}/quotes", status_code=status.HTTP_201_CREATED, summary="Create a draft quote")
def create_quote(
    project_id: str,
    data: QuoteCreate,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    options = QuoteDraftOptions(**data.model_dump())
    return unwrap(QuoteService(db).create_draft(project_id, context, options)).to_dict()


@router.patch("/{project_id}/quotes/{quote_id}", summary="Edit a draft quote")
def update_quote(
    project_id: str,
    quote_id: str,
    data: QuoteUpdate,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    result = QuoteService(db).update_draft(project_id, quote_id, data.to_updates(), context)
    return unwrap(result).to_dict()


@router.post("/{project_id}/quotes/expire", summary="Expire overdue sent quotes")
def expire_quotes(
    project_id: str,
    data: ExpireRequest,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    expired = unwrap(QuoteService(db).expire_overdue(project_id, context, data.today))
    return {"expired": [q.to_dict() for q in expired]}


@router.post("/{project_id}/quotes/{quote_id}/send", summary="Mark a draft as sent")
def send_quote(
    project_id: str,
    quote_id: str,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    return unwrap(QuoteService(db).mark_as_sent(project_id, quote_id, context)).to_dict()


@router.post("/{project_id}/quotes/{quote_id}/accept", summary="Mark a sent quote as accepted")
def accept_quote(
    project_id: str,
    quote_id: str,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    return unwrap(QuoteService(db).mark_as_accepted(project_id, quote_id, context)).to_dict()


@router.post("/{project_id}/quotes/{quote_id}/reject", summary="Mark a sent quote as rejected")
def reject_quote(
    project_id: str,
    quote_id: str,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    return unwrap(QuoteService(db).mark_as_rejected(project_id, quote_id, context)).to_dict()


@router.post("/{project_id}/quotes/{quote_id}/new-version", status_code=status.HTTP_201_CREATED,
             summary="Create a new draft version from a quote")
def new_quote_version(
    project_id: str,
    quote_id: str,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    return unwrap(QuoteService(db).create_new_version(project_id, quote_id, context)).to_dict()
