"""
Project Entity - Aggregate root of the lifecycle engine.

A project owns its configuration, quotes, amendments and snapshots. Services
never mutate a loaded Project; they compute the changed fields and hand them
to the repository in a single update.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .amendment import ProjectAmendment
from .base import dump_datetime
from .bom import BOMSnapshot
from .configuration import Configuration, ConfigurationSnapshot, PropulsionType
from .quote import ProjectQuote, QuoteStatus


class ProjectStatus(str, Enum):
    DRAFT = "DRAFT"
    QUOTED = "QUOTED"
    OFFER_SENT = "OFFER_SENT"
    ORDER_CONFIRMED = "ORDER_CONFIRMED"
    IN_PRODUCTION = "IN_PRODUCTION"
    READY_FOR_DELIVERY = "READY_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CLOSED = "CLOSED"


class ProjectType(str, Enum):
    NEW_BUILD = "NEW_BUILD"
    REFIT = "REFIT"
    MAINTENANCE = "MAINTENANCE"


@dataclass(frozen=True)
class ProjectInput:
    """Input for creating a project."""
    title: str
    client_id: str
    type: ProjectType = ProjectType.NEW_BUILD
    propulsion_type: PropulsionType = PropulsionType.ELECTRIC


@dataclass(frozen=True)
class Project:
    """
    Boat-building project.

    While status is ORDER_CONFIRMED or later, configuration.items only change
    through an amendment.
    """

    id: str
    project_number: str
    title: str
    type: ProjectType
    status: ProjectStatus
    client_id: str
    configuration: Configuration
    created_at: datetime
    created_by: str
    updated_at: datetime
    configuration_snapshots: List[ConfigurationSnapshot] = field(default_factory=list)
    quotes: List[ProjectQuote] = field(default_factory=list)
    current_quote_id: Optional[str] = None
    amendments: List[ProjectAmendment] = field(default_factory=list)
    bom_snapshots: List[BOMSnapshot] = field(default_factory=list)
    archived_at: Optional[datetime] = None
    archived_by: Optional[str] = None
    archive_reason: Optional[str] = None
    version: int = 1

    def find_quote(self, quote_id: str) -> Optional[ProjectQuote]:
        return next((quote for quote in self.quotes if quote.id == quote_id), None)

    def quotes_with_status(self, status: QuoteStatus) -> List[ProjectQuote]:
        return [quote for quote in self.quotes if quote.status == status]

    @property
    def latest_bom(self) -> Optional[BOMSnapshot]:
        return self.bom_snapshots[-1] if self.bom_snapshots else None

    @property
    def latest_configuration_snapshot(self) -> Optional[ConfigurationSnapshot]:
        return self.configuration_snapshots[-1] if self.configuration_snapshots else None

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'project_number': self.project_number,
            'title': self.title,
            'type': self.type.value,
            'status': self.status.value,
            'client_id': self.client_id,
            'configuration': self.configuration.to_dict(),
            'configuration_snapshots': [s.to_dict() for s in self.configuration_snapshots],
            'quotes': [q.to_dict() for q in self.quotes],
            'current_quote_id': self.current_quote_id,
            'amendments': [a.to_dict() for a in self.amendments],
            'bom_snapshots': [b.to_dict() for b in self.bom_snapshots],
            'created_at': dump_datetime(self.created_at),
            'created_by': self.created_by,
            'updated_at': dump_datetime(self.updated_at),
            'archived_at': dump_datetime(self.archived_at),
            'archived_by': self.archived_by,
            'archive_reason': self.archive_reason,
            'version': self.version,
        }
