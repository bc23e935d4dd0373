"""
Project API Endpoints - Creation, lifecycle transitions and archiving.

Implements:
- POST /api/v1/projects - Create a DRAFT project
- GET /api/v1/projects - List active projects
- GET /api/v1/projects/{id} - Full project aggregate
- GET /api/v1/projects/{id}/summary - Lifecycle summary
- GET /api/v1/projects/{id}/next-statuses - Statuses reachable now
- GET /api/v1/projects/{id}/transitions/{target} - Preview a transition
- POST /api/v1/projects/{id}/transitions - Commit a transition
- POST /api/v1/projects/{id}/archive - Archive a project
- PATCH /api/v1/projects/{id}/type - Change the project type
"""
from typing import Optional
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from boatyard.models import get_db
from boatyard.domain.audit import AuditContext
from boatyard.domain.entities import ProjectInput, ProjectStatus, ProjectType, PropulsionType
from boatyard.domain.services import ProjectService
from .dependencies import get_audit_context, unwrap

router = APIRouter()


# =============================================================================
# Pydantic Models
# =============================================================================

class ProjectCreate(BaseModel):
    """Request model for creating a project."""
    title: str = Field(..., max_length=255, description="Project title")
    client_id: str = Field(..., max_length=64, description="Client reference")
    type: ProjectType = Field(ProjectType.NEW_BUILD, description="NEW_BUILD, REFIT or MAINTENANCE")
    propulsion_type: PropulsionType = Field(PropulsionType.ELECTRIC, description="Propulsion of the boat")


class TransitionRequest(BaseModel):
    """Request model for a status transition."""
    target: ProjectStatus
    confirm_effects: bool = Field(False, description="User confirmed the milestone effects")
    reason: Optional[str] = Field(None, max_length=500)


class ArchiveRequest(BaseModel):
    reason: str = Field(..., max_length=500)


class TypeUpdate(BaseModel):
    type: ProjectType


# =============================================================================
# Endpoints
# =============================================================================

@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a project")
def create_project(
    data: ProjectCreate,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    project_input = ProjectInput(
        title=data.title,
        client_id=data.client_id,
        type=data.type,
        propulsion_type=data.propulsion_type,
    )
    return unwrap(ProjectService(db).create(project_input, context)).to_dict()


@router.get("", summary="List active projects")
def list_projects(db: Session = Depends(get_db)):
    projects = unwrap(ProjectService(db).get_active())
    return {
        "projects": [
            {
                "id": p.id,
                "project_number": p.project_number,
                "title": p.title,
                "type": p.type.value,
                "status": p.status.value,
                "client_id": p.client_id,
            }
            for p in projects
        ],
        "total": len(projects),
    }


@router.get("/{project_id}", summary="Get a project")
def get_project(project_id: str, db: Session = Depends(get_db)):
    return unwrap(ProjectService(db).get_by_id(project_id)).to_dict()


@router.get("/{project_id}/summary", summary="Lifecycle summary of a project")
def get_project_summary(project_id: str, db: Session = Depends(get_db)):
    return unwrap(ProjectService(db).get_project_summary(project_id)).to_dict()


@router.get("/{project_id}/next-statuses", summary="Statuses the project can move to now")
def get_next_statuses(project_id: str, db: Session = Depends(get_db)):
    statuses = unwrap(ProjectService(db).get_valid_next_statuses(project_id))
    return {"statuses": [s.value for s in statuses]}


@router.get("/{project_id}/transitions/{target}", summary="Preview a status transition")
def preview_transition(project_id: str, target: str, db: Session = Depends(get_db)):
    return unwrap(ProjectService(db).preview_transition(project_id, target)).to_dict()


@router.post("/{project_id}/transitions", summary="Commit a status transition")
def transition_project(
    project_id: str,
    data: TransitionRequest,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    """
    Move the project to the target status.

    Transitions with milestone effects (e.g. the configuration freeze on
    ORDER_CONFIRMED) are refused unless confirm_effects is true.
    """
    result = ProjectService(db).transition_status(
        project_id, data.target, context,
        confirm_effects=data.confirm_effects,
        reason=data.reason,
    )
    return unwrap(result).to_dict()


@router.post("/{project_id}/archive", summary="Archive a project")
def archive_project(
    project_id: str,
    data: ArchiveRequest,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    return unwrap(ProjectService(db).archive(project_id, data.reason, context)).to_dict()


@router.patch("/{project_id}/type", summary="Change the project type")
def update_project_type(
    project_id: str,
    data: TypeUpdate,
    db: Session = Depends(get_db),
    context: AuditContext = Depends(get_audit_context),
):
    return unwrap(ProjectService(db).update_project_type(project_id, data.type, context)).to_dict()
