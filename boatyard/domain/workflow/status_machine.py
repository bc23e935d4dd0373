"""
Status Machine - Project lifecycle graph, guards and milestone effects.

The graph is strictly forward:

    DRAFT -> QUOTED -> OFFER_SENT -> ORDER_CONFIRMED -> IN_PRODUCTION
          -> READY_FOR_DELIVERY -> DELIVERED -> CLOSED

Once ORDER_CONFIRMED is reached nothing before it can be targeted again.
Freezing the configuration is a side effect of entering ORDER_CONFIRMED and
is announced through milestone effects, which the caller must confirm
before committing the transition.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, TYPE_CHECKING

from boatyard.domain.entities.project import ProjectStatus
from boatyard.domain.entities.quote import QuoteStatus

if TYPE_CHECKING:
    from boatyard.domain.entities.project import Project


VALID_TRANSITIONS: Dict[ProjectStatus, List[ProjectStatus]] = {
    ProjectStatus.DRAFT: [ProjectStatus.QUOTED],
    ProjectStatus.QUOTED: [ProjectStatus.OFFER_SENT],
    ProjectStatus.OFFER_SENT: [ProjectStatus.ORDER_CONFIRMED],
    ProjectStatus.ORDER_CONFIRMED: [ProjectStatus.IN_PRODUCTION],
    ProjectStatus.IN_PRODUCTION: [ProjectStatus.READY_FOR_DELIVERY],
    ProjectStatus.READY_FOR_DELIVERY: [ProjectStatus.DELIVERED],
    ProjectStatus.DELIVERED: [ProjectStatus.CLOSED],
    ProjectStatus.CLOSED: [],
}

EDITABLE_STATUSES = frozenset({
    ProjectStatus.DRAFT,
    ProjectStatus.QUOTED,
    ProjectStatus.OFFER_SENT,
})

FROZEN_STATUSES = frozenset({
    ProjectStatus.ORDER_CONFIRMED,
    ProjectStatus.IN_PRODUCTION,
    ProjectStatus.READY_FOR_DELIVERY,
    ProjectStatus.DELIVERED,
    ProjectStatus.CLOSED,
})

LOCKED_STATUSES = frozenset({ProjectStatus.CLOSED})

MILESTONE_STATUSES = frozenset({
    ProjectStatus.OFFER_SENT,
    ProjectStatus.ORDER_CONFIRMED,
    ProjectStatus.CLOSED,
})


class MilestoneEffectType(str, Enum):
    LOCK_QUOTE = "LOCK_QUOTE"
    FREEZE_CONFIGURATION = "FREEZE_CONFIGURATION"
    GENERATE_BOM = "GENERATE_BOM"
    LOCK_PROJECT = "LOCK_PROJECT"


@dataclass(frozen=True)
class MilestoneEffect:
    type: MilestoneEffectType
    description: str

    def to_dict(self) -> dict:
        return {'type': self.type.value, 'description': self.description}


MILESTONE_EFFECTS: Dict[ProjectStatus, List[MilestoneEffect]] = {
    ProjectStatus.OFFER_SENT: [
        MilestoneEffect(MilestoneEffectType.LOCK_QUOTE, "Sent quote will be locked"),
    ],
    ProjectStatus.ORDER_CONFIRMED: [
        MilestoneEffect(
            MilestoneEffectType.FREEZE_CONFIGURATION,
            "Configuration will be frozen as snapshot",
        ),
        MilestoneEffect(
            MilestoneEffectType.GENERATE_BOM,
            "Bill of Materials baseline will be generated",
        ),
    ],
    ProjectStatus.CLOSED: [
        MilestoneEffect(
            MilestoneEffectType.LOCK_PROJECT,
            "Project will be locked; amendments are no longer possible",
        ),
    ],
}


@dataclass(frozen=True)
class TransitionContext:
    """Project facts the transition guards depend on."""
    has_quote_draft: bool = False
    has_quote_sent: bool = False
    has_quote_accepted: bool = False
    configuration_item_count: int = 0
    has_bom: bool = False

    @classmethod
    def from_project(cls, project: "Project") -> "TransitionContext":
        statuses = {quote.status for quote in project.quotes}
        return cls(
            has_quote_draft=QuoteStatus.DRAFT in statuses,
            # A quote that was sent and later answered still counts as sent.
            has_quote_sent=bool(statuses & {QuoteStatus.SENT, QuoteStatus.ACCEPTED, QuoteStatus.REJECTED}),
            has_quote_accepted=QuoteStatus.ACCEPTED in statuses,
            configuration_item_count=project.configuration.item_count,
            has_bom=bool(project.bom_snapshots),
        )


@dataclass
class TransitionValidation:
    """Outcome of validating a single status transition."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    requires_confirmation: bool = False
    milestone_effects: List[MilestoneEffect] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'is_valid': self.is_valid,
            'errors': list(self.errors),
            'warnings': list(self.warnings),
            'requires_confirmation': self.requires_confirmation,
            'milestone_effects': [effect.to_dict() for effect in self.milestone_effects],
        }


@dataclass(frozen=True)
class StatusInfo:
    label: str
    description: str
    color: str
    bg_color: str

    def to_dict(self) -> dict:
        return {
            'label': self.label,
            'description': self.description,
            'color': self.color,
            'bg_color': self.bg_color,
        }


STATUS_INFO: Dict[ProjectStatus, StatusInfo] = {
    ProjectStatus.DRAFT: StatusInfo(
        "Draft", "Project is being configured", "text-slate-700", "bg-slate-100"),
    ProjectStatus.QUOTED: StatusInfo(
        "Quoted", "Quote has been generated", "text-blue-700", "bg-blue-100"),
    ProjectStatus.OFFER_SENT: StatusInfo(
        "Offer Sent", "Quote sent to client, awaiting response", "text-indigo-700", "bg-indigo-100"),
    ProjectStatus.ORDER_CONFIRMED: StatusInfo(
        "Order Confirmed", "Client has accepted, configuration frozen", "text-green-700", "bg-green-100"),
    ProjectStatus.IN_PRODUCTION: StatusInfo(
        "In Production", "Boat is being built", "text-orange-700", "bg-orange-100"),
    ProjectStatus.READY_FOR_DELIVERY: StatusInfo(
        "Ready for Delivery", "Production complete, awaiting handover", "text-cyan-700", "bg-cyan-100"),
    ProjectStatus.DELIVERED: StatusInfo(
        "Delivered", "Boat delivered to client", "text-emerald-700", "bg-emerald-100"),
    ProjectStatus.CLOSED: StatusInfo(
        "Closed", "Project completed and archived", "text-slate-500", "bg-slate-50"),
}


class StatusMachine:
    """Static rules for project status transitions and status-derived policy."""

    @staticmethod
    def get_valid_next_statuses(
        current: ProjectStatus,
        context: Optional[TransitionContext] = None,
    ) -> List[ProjectStatus]:
        """
        One-hop successors of a status.

        Args:
            current: Current project status
            context: When given, only successors whose guards pass are returned

        Returns:
            Ordered list of reachable statuses
        """
        candidates = list(VALID_TRANSITIONS[ProjectStatus(current)])
        if context is None:
            return candidates
        return [
            target for target in candidates
            if StatusMachine.validate_transition(current, target, context).is_valid
        ]

    @staticmethod
    def can_transition(current: ProjectStatus, target: ProjectStatus) -> bool:
        return ProjectStatus(target) in VALID_TRANSITIONS[ProjectStatus(current)]

    @staticmethod
    def get_milestone_effects(target: ProjectStatus) -> List[MilestoneEffect]:
        return list(MILESTONE_EFFECTS.get(ProjectStatus(target), []))

    @staticmethod
    def validate_transition(
        current: ProjectStatus,
        target: ProjectStatus,
        context: TransitionContext,
    ) -> TransitionValidation:
        """
        Check a transition against the graph and its guards.

        Args:
            current: Current project status
            target: Requested status
            context: Quote and configuration facts for the guards

        Returns:
            TransitionValidation; milestone_effects must be confirmed by the
            user before the transition is committed
        """
        current = ProjectStatus(current)
        target = ProjectStatus(target)

        if not StatusMachine.can_transition(current, target):
            return TransitionValidation(
                is_valid=False,
                errors=[f"Cannot transition from {current.value} to {target.value}"],
            )

        errors: List[str] = []
        warnings: List[str] = []

        if current == ProjectStatus.DRAFT and target == ProjectStatus.QUOTED:
            if context.configuration_item_count <= 0:
                errors.append("Configuration must contain at least one item before marking as Quoted")
        elif current == ProjectStatus.QUOTED and target == ProjectStatus.OFFER_SENT:
            if not context.has_quote_sent:
                errors.append("Quote must be marked as sent before proceeding")
        elif current == ProjectStatus.OFFER_SENT and target == ProjectStatus.ORDER_CONFIRMED:
            if not context.has_quote_accepted:
                errors.append("Quote must be accepted by client before confirming order")
        elif target == ProjectStatus.DELIVERED and not context.has_bom:
            warnings.append("No BOM baseline exists for this project")

        effects = StatusMachine.get_milestone_effects(target)
        return TransitionValidation(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            requires_confirmation=bool(effects),
            milestone_effects=effects,
        )

    @staticmethod
    def is_editable(status: ProjectStatus) -> bool:
        """Direct configuration edits and quote drafting are allowed."""
        return ProjectStatus(status) in EDITABLE_STATUSES

    @staticmethod
    def is_frozen(status: ProjectStatus) -> bool:
        """Configuration changes must go through an amendment."""
        return ProjectStatus(status) in FROZEN_STATUSES

    @staticmethod
    def is_locked(status: ProjectStatus) -> bool:
        """Even amendments are refused."""
        return ProjectStatus(status) in LOCKED_STATUSES

    @staticmethod
    def is_milestone(status: ProjectStatus) -> bool:
        return ProjectStatus(status) in MILESTONE_STATUSES

    @staticmethod
    def get_status_info(status: ProjectStatus) -> StatusInfo:
        return STATUS_INFO[ProjectStatus(status)]
