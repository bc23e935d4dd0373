"""
Amendment Service - Change control for frozen configurations.

After order confirmation the configuration can only change through an
amendment. A request describes its changes declaratively (items to add,
remove and update). The service applies them to a copy of the
configuration, prices the difference, and persists the new configuration,
the before/after snapshots and the amendment record in one update.

Approval is synchronous: the approver is recorded at request time and
there is no pending state.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from boatyard.domain.audit import AuditContext
from boatyard.domain.entities.amendment import AmendmentType, ProjectAmendment
from boatyard.domain.entities.base import new_id, utcnow
from boatyard.domain.entities.configuration import (
    ConfigurationItem,
    ConfigurationItemInput,
    ConfigurationSnapshot,
    SnapshotTrigger,
    renumber_items,
)
from boatyard.domain.entities.project import Project
from boatyard.domain.exceptions import (
    ConfigurationItemNotFoundError,
    NotFoundError,
    PolicyError,
    ProjectLockedError,
    ValidationError,
)
from boatyard.domain.pricing import ZERO, to_money
from boatyard.domain.result import returns_result
from boatyard.domain.workflow.status_machine import StatusMachine
from .base_service import ProjectAggregateService
from .configuration_service import (
    apply_item_updates,
    next_sort_order,
    validate_item_input,
    validate_item_updates,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemUpdate:
    item_id: str
    updates: Dict[str, Any]


@dataclass(frozen=True)
class AmendmentChanges:
    """Declarative description of a configuration change."""
    items_to_add: List[ConfigurationItemInput] = field(default_factory=list)
    items_to_remove: List[str] = field(default_factory=list)
    items_to_update: List[ItemUpdate] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.items_to_add or self.items_to_remove or self.items_to_update)


@dataclass(frozen=True)
class AmendmentEligibility:
    can_amend: bool
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {'can_amend': self.can_amend, 'reason': self.reason}


def check_amendable(project: Project) -> None:
    """
    Raises:
        ProjectLockedError: When the project is closed
        PolicyError: When the configuration is not frozen yet
    """
    if StatusMachine.is_locked(project.status):
        raise ProjectLockedError(project.project_number)
    if not StatusMachine.is_frozen(project.status):
        raise PolicyError(
            f"Project {project.project_number} is in {project.status.value} status; "
            f"edit the configuration directly until the order is confirmed"
        )


def _parse_amendment_type(value) -> AmendmentType:
    try:
        return AmendmentType(value)
    except ValueError:
        raise ValidationError("type", f"unknown amendment type '{value}'")


def apply_changes(items: List[ConfigurationItem], changes: AmendmentChanges):
    """
    Apply changes in the order remove, update, add.

    Returns:
        Tuple of (new item list with contiguous sort_order, affected item names)

    Raises:
        ConfigurationItemNotFoundError: For an id that is not in the configuration
    """
    affected: List[str] = []
    by_id = {item.id: item for item in items}

    for item_id in changes.items_to_remove:
        removed = by_id.pop(item_id, None)
        if removed is None:
            raise ConfigurationItemNotFoundError(item_id)
        affected.append(removed.name)

    for update in changes.items_to_update:
        item = by_id.get(update.item_id)
        if item is None:
            raise ConfigurationItemNotFoundError(update.item_id)
        by_id[update.item_id] = apply_item_updates(item, update.updates)
        affected.append(by_id[update.item_id].name)

    remaining = [by_id[item.id] for item in items if item.id in by_id]
    for item_input in changes.items_to_add:
        added = ConfigurationItem.create(item_input, sort_order=next_sort_order(remaining))
        remaining.append(added)
        affected.append(added.name)

    return renumber_items(remaining), affected


class AmendmentService(ProjectAggregateService):
    """Request amendments and query a project's amendment history."""

    @returns_result
    def request_amendment(
        self,
        project_id: str,
        amendment_type: AmendmentType,
        reason: str,
        changes: AmendmentChanges,
        context: AuditContext,
        approver: Optional[AuditContext] = None,
    ) -> ProjectAmendment:
        """
        Apply a priced, audited change to a frozen configuration.

        Args:
            project_id: Project identifier
            amendment_type: Kind of change
            reason: Why the change is made; must not be blank
            changes: Items to add, remove and update
            context: Requesting user
            approver: Approving user; defaults to the requester

        Returns:
            Result with the new ProjectAmendment
        """
        amendment_type = _parse_amendment_type(amendment_type)
        approver = approver or context
        if not (reason or "").strip():
            raise ValidationError("reason", "an amendment requires a reason")
        if changes.is_empty:
            raise ValidationError("changes", "an amendment requires at least one change")
        for item_input in changes.items_to_add:
            validate_item_input(item_input)
        for update in changes.items_to_update:
            validate_item_updates(update.updates)

        project = self._load(project_id)
        check_amendable(project)

        before = project.configuration
        items, affected = apply_changes(before.sorted_items(), changes)
        after = before.with_items(items, modified_by=context.user_id)
        price_impact = to_money(after.subtotal_excl_vat - before.subtotal_excl_vat)

        amendment_number = len(project.amendments) + 1
        snapshot_number = len(project.configuration_snapshots) + 1
        before_snapshot = ConfigurationSnapshot.capture(
            before, snapshot_number, SnapshotTrigger.AMENDMENT, context.user_id,
            trigger_reason=f"Before amendment #{amendment_number}",
        )
        after_snapshot = ConfigurationSnapshot.capture(
            after, snapshot_number + 1, SnapshotTrigger.AMENDMENT, context.user_id,
            trigger_reason=f"After amendment #{amendment_number}: {reason.strip()}",
        )

        now = utcnow()
        amendment = ProjectAmendment(
            id=new_id(),
            amendment_number=amendment_number,
            type=amendment_type,
            reason=reason.strip(),
            affected_items=affected,
            price_impact_excl_vat=price_impact,
            before_snapshot_id=before_snapshot.id,
            after_snapshot_id=after_snapshot.id,
            requested_by=context.user_id,
            requested_at=now,
            approved_by=approver.user_id,
            approved_at=now,
            created_at=now,
        )

        self._save(project, {
            "configuration": after,
            "configuration_snapshots": [*project.configuration_snapshots, before_snapshot, after_snapshot],
            "amendments": [*project.amendments, amendment],
        })

        logger.info(
            f"Amendment #{amendment_number} ({amendment.type.value}) on {project.project_number}: "
            f"impact {price_impact}"
        )
        return amendment

    @returns_result
    def get_amendments(self, project_id: str) -> List[ProjectAmendment]:
        return list(self._load(project_id).amendments)

    @returns_result
    def get_amendment_by_id(self, project_id: str, amendment_id: str) -> ProjectAmendment:
        project = self._load(project_id)
        amendment = next((a for a in project.amendments if a.id == amendment_id), None)
        if amendment is None:
            raise NotFoundError("Amendment", amendment_id)
        return amendment

    @returns_result
    def get_total_price_impact(self, project_id: str) -> Decimal:
        amendments = self._load(project_id).amendments
        return to_money(sum((a.price_impact_excl_vat for a in amendments), ZERO))

    @returns_result
    def can_amend(self, project_id: str) -> AmendmentEligibility:
        project = self._load(project_id)
        try:
            check_amendable(project)
        except PolicyError as e:
            return AmendmentEligibility(can_amend=False, reason=e.message)
        return AmendmentEligibility(can_amend=True)
