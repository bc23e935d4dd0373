"""
BOM API Endpoints - Bill of materials snapshots and exports.

Implements:
- POST /api/v1/projects/{id}/bom - Generate a new snapshot
- GET /api/v1/projects/{id}/bom - All snapshots
- GET /api/v1/projects/{id}/bom/latest - Latest snapshot with estimation summary
- GET /api/v1/projects/{id}/bom/latest/csv - CSV export of the latest snapshot
- GET /api/v1/projects/{id}/bom/margin - Sell price vs latest BOM cost
"""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from boatyard.models import get_db
from boatyard.domain.audit import AuditContext
from boatyard.domain.entities import SnapshotTrigger
from boatyard.domain.services import BOMService
from .dependencies import get_audit_context, unwrap

router = APIRouter()


def _latest_or_404(service: BOMService, project_id: str):
    bom = unwrap(service.get_latest_bom(project_id))
    if bom is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "No BOM has been generated for this project", "code": "NOT_FOUND"},
        )
    return bom


@router.post("/{project_id}/bom", status_code=status.HTTP_201_CREATED, summary="Generate a BOM snapshot")
def generate_bom(
    project_id: str,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    """Costs are estimated from the sell price where no supplier cost is known."""
    service = BOMService(db)
    bom = unwrap(service.generate_bom(project_id, context, SnapshotTrigger.MANUAL))
    return {
        "bom": bom.to_dict(),
        "estimation": service.get_estimation_summary(bom).to_dict(),
    }


@router.get("/{project_id}/bom", summary="List BOM snapshots")
def list_boms(project_id: str, db: Session = Depends(get_db)):
    boms = unwrap(BOMService(db).get_all_boms(project_id))
    return {"snapshots": [b.to_dict() for b in boms], "total": len(boms)}


@router.get("/{project_id}/bom/latest", summary="Latest BOM snapshot")
def latest_bom(project_id: str, db: Session = Depends(get_db)):
    service = BOMService(db)
    bom = _latest_or_404(service, project_id)
    return {
        "bom": bom.to_dict(),
        "estimation": service.get_estimation_summary(bom).to_dict(),
        "by_category": [c.to_dict() for c in service.get_cost_summary_by_category(bom)],
        "critical_path": [i.to_dict() for i in service.get_critical_path_items(bom)],
    }


@router.get("/{project_id}/bom/latest/csv", response_class=PlainTextResponse,
            summary="Export the latest BOM as CSV")
def export_latest_bom(project_id: str, db: Session = Depends(get_db)):
    service = BOMService(db)
    bom = _latest_or_404(service, project_id)
    return PlainTextResponse(
        service.export_to_csv(bom),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="bom-{project_id}-{bom.snapshot_number}.csv"'},
    )


@router.get("/{project_id}/bom/margin", summary="Margin against the latest BOM")
def bom_margin(project_id: str, db: Session = Depends(get_db)):
    margin = unwrap(BOMService(db).calculate_margin(project_id))
    return margin.to_dict() if margin else None
