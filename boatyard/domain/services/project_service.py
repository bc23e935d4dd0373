"""
Project Service - Project creation, status transitions and archiving.

Status transitions are validated by the StatusMachine. Milestone effects
must be confirmed by the caller before the committing call; entering
ORDER_CONFIRMED freezes the configuration, records a configuration snapshot
and a BOM baseline in the same update as the status change.
"""
import logging
from dataclasses import dataclass, replace
from typing import List, Optional

from boatyard.domain.audit import AuditContext
from boatyard.domain.entities.base import new_id, utcnow
from boatyard.domain.entities.configuration import (
    Configuration,
    ConfigurationSnapshot,
    PropulsionType,
    SnapshotTrigger,
)
from boatyard.domain.entities.project import Project, ProjectInput, ProjectStatus, ProjectType
from boatyard.domain.entities.quote import ProjectQuote
from boatyard.domain.exceptions import InvalidTransitionError, PolicyError, ValidationError
from boatyard.domain.result import returns_result
from boatyard.domain.workflow.status_machine import (
    MilestoneEffectType,
    StatusInfo,
    StatusMachine,
    TransitionContext,
    TransitionValidation,
)
from .base_service import ProjectAggregateService
from .bom_service import build_snapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectSummary:
    """Dashboard view of a project's lifecycle state."""
    project_id: str
    project_number: str
    title: str
    status: ProjectStatus
    status_info: StatusInfo
    is_editable: bool
    is_frozen: bool
    is_locked: bool
    valid_next_statuses: List[ProjectStatus]
    current_quote: Optional[ProjectQuote]
    quote_count: int
    amendment_count: int
    latest_bom_number: Optional[int]

    def to_dict(self) -> dict:
        return {
            'project_id': self.project_id,
            'project_number': self.project_number,
            'title': self.title,
            'status': self.status.value,
            'status_info': self.status_info.to_dict(),
            'is_editable': self.is_editable,
            'is_frozen': self.is_frozen,
            'is_locked': self.is_locked,
            'valid_next_statuses': [s.value for s in self.valid_next_statuses],
            'current_quote': self.current_quote.to_dict() if self.current_quote else None,
            'quote_count': self.quote_count,
            'amendment_count': self.amendment_count,
            'latest_bom_number': self.latest_bom_number,
        }


def _parse_status(value) -> ProjectStatus:
    try:
        return ProjectStatus(value)
    except ValueError:
        raise ValidationError("status", f"unknown project status '{value}'")


class ProjectService(ProjectAggregateService):
    """Lifecycle operations on the Project aggregate."""

    @returns_result
    def create(self, project_input: ProjectInput, context: AuditContext) -> Project:
        """
        Create a DRAFT project with an empty configuration.

        Args:
            project_input: Title, client, type and propulsion
            context: Audit identity

        Returns:
            Result with the new Project
        """
        title = (project_input.title or "").strip()
        client_id = (project_input.client_id or "").strip()
        if not title:
            raise ValidationError("title", "must not be empty")
        if not client_id:
            raise ValidationError("client_id", "must not be empty")
        try:
            project_type = ProjectType(project_input.type)
            propulsion = PropulsionType(project_input.propulsion_type)
        except ValueError as e:
            raise ValidationError("type", str(e))

        now = utcnow()
        project = Project(
            id=new_id(),
            project_number=self.repository.next_project_number(now.year),
            title=title,
            type=project_type,
            status=ProjectStatus.DRAFT,
            client_id=client_id,
            configuration=Configuration.empty(self.settings.get_vat_rate(), propulsion, context.user_id),
            created_at=now,
            created_by=context.user_id,
            updated_at=now,
        )
        return self.repository.create(project)

    @returns_result
    def get_by_id(self, project_id: str) -> Project:
        return self._load(project_id)

    @returns_result
    def get_active(self) -> List[Project]:
        return self.repository.get_active()

    @returns_result
    def get_valid_next_statuses(self, project_id: str) -> List[ProjectStatus]:
        """Successors whose guards pass for the project's current state."""
        project = self._load(project_id)
        return StatusMachine.get_valid_next_statuses(project.status, TransitionContext.from_project(project))

    @returns_result
    def preview_transition(self, project_id: str, target: ProjectStatus) -> TransitionValidation:
        """Validation and milestone effects to show the user before committing."""
        target = _parse_status(target)
        project = self._load(project_id)
        return StatusMachine.validate_transition(
            project.status, target, TransitionContext.from_project(project)
        )

    @returns_result
    def transition_status(
        self,
        project_id: str,
        target: ProjectStatus,
        context: AuditContext,
        confirm_effects: bool = False,
        reason: Optional[str] = None,
    ) -> Project:
        """
        Move a project to its next status and apply milestone effects.

        Args:
            project_id: Project identifier
            target: Requested status
            context: Audit identity
            confirm_effects: The user has acknowledged the milestone effects
            reason: Optional note recorded on the freeze snapshot

        Returns:
            Result with the updated Project

        Raises (as a failed Result):
            InvalidTransitionError: If the graph or a guard forbids the move
            PolicyError: If milestone effects were not confirmed
        """
        target = _parse_status(target)
        project = self._load(project_id)

        validation = StatusMachine.validate_transition(
            project.status, target, TransitionContext.from_project(project)
        )
        if not validation.is_valid:
            raise InvalidTransitionError(
                "Project", project.status.value, target.value, "; ".join(validation.errors)
            )
        if validation.milestone_effects and not confirm_effects:
            descriptions = "; ".join(e.description for e in validation.milestone_effects)
            raise PolicyError(
                f"Transition to {target.value} has effects that must be confirmed: {descriptions}"
            )

        effect_types = {effect.type for effect in validation.milestone_effects}
        changes = {"status": target}
        staged = project

        if MilestoneEffectType.FREEZE_CONFIGURATION in effect_types:
            frozen = project.configuration.frozen(context.user_id)
            snapshot = ConfigurationSnapshot.capture(
                frozen,
                len(project.configuration_snapshots) + 1,
                SnapshotTrigger.ORDER_CONFIRMED,
                context.user_id,
                trigger_reason=reason or "Order confirmed",
            )
            staged = replace(
                staged,
                configuration=frozen,
                configuration_snapshots=[*project.configuration_snapshots, snapshot],
            )
            changes["configuration"] = staged.configuration
            changes["configuration_snapshots"] = staged.configuration_snapshots

        if MilestoneEffectType.GENERATE_BOM in effect_types:
            ratio = self.settings.get_cost_estimation().default_ratio
            bom = build_snapshot(staged, ratio, context, SnapshotTrigger.ORDER_CONFIRMED)
            changes["bom_snapshots"] = [*project.bom_snapshots, bom]

        updated = self._save(project, changes)
        for warning in validation.warnings:
            logger.warning(f"{project.project_number} -> {target.value}: {warning}")
        logger.info(
            f"Project {project.project_number} moved {project.status.value} -> {target.value} "
            f"by {context.user_id}"
        )
        return updated

    @returns_result
    def archive(self, project_id: str, reason: str, context: AuditContext) -> Project:
        """Archive a project. Frozen projects can only be archived once CLOSED."""
        if not (reason or "").strip():
            raise ValidationError("reason", "archiving requires a reason")
        project = self._load(project_id)
        if project.is_archived:
            raise PolicyError(f"Project {project.project_number} is already archived")
        if StatusMachine.is_frozen(project.status) and project.status != ProjectStatus.CLOSED:
            raise PolicyError(
                f"Project {project.project_number} has a confirmed order and can only be archived when closed"
            )

        updated = self._save(project, {
            "archived_at": utcnow(),
            "archived_by": context.user_id,
            "archive_reason": reason.strip(),
        })
        logger.info(f"Archived project {project.project_number}")
        return updated

    @returns_result
    def update_project_type(self, project_id: str, new_type: ProjectType,
                            context: AuditContext) -> Project:
        try:
            new_type = ProjectType(new_type)
        except ValueError:
            raise ValidationError("type", f"unknown project type '{new_type}'")
        project = self._load(project_id)
        if StatusMachine.is_locked(project.status):
            raise PolicyError(f"Project {project.project_number} is closed")
        return self._save(project, {"type": new_type})

    @returns_result
    def get_project_summary(self, project_id: str) -> ProjectSummary:
        project = self._load(project_id)
        current_quote = project.find_quote(project.current_quote_id) if project.current_quote_id else None
        latest_bom = project.latest_bom
        return ProjectSummary(
            project_id=project.id,
            project_number=project.project_number,
            title=project.title,
            status=project.status,
            status_info=StatusMachine.get_status_info(project.status),
            is_editable=StatusMachine.is_editable(project.status),
            is_frozen=StatusMachine.is_frozen(project.status),
            is_locked=StatusMachine.is_locked(project.status),
            valid_next_statuses=StatusMachine.get_valid_next_statuses(
                project.status, TransitionContext.from_project(project)
            ),
            current_quote=current_quote,
            quote_count=len(project.quotes),
            amendment_count=len(project.amendments),
            latest_bom_number=latest_bom.snapshot_number if latest_bom else None,
        )
