"""
Project Repository - Data access layer for the Project aggregate.

Implements repository pattern for projects with:
- Mapping between ProjectRecord rows and immutable Project entities
- Single-commit updates of any subset of aggregate fields
- Optimistic concurrency through the record's version column
"""
import logging
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from boatyard.config import get_config
from boatyard.models import ProjectRecord
from boatyard.domain.entities.amendment import ProjectAmendment
from boatyard.domain.entities.base import utcnow
from boatyard.domain.entities.bom import BOMSnapshot
from boatyard.domain.entities.configuration import Configuration, ConfigurationSnapshot
from boatyard.domain.entities.project import Project, ProjectStatus, ProjectType
from boatyard.domain.entities.quote import ProjectQuote
from boatyard.domain.exceptions import ConcurrencyError
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

# Aggregate fields that may be changed through update()
UPDATABLE_FIELDS = frozenset({
    "title",
    "type",
    "status",
    "configuration",
    "configuration_snapshots",
    "quotes",
    "current_quote_id",
    "amendments",
    "bom_snapshots",
    "archived_at",
    "archived_by",
    "archive_reason",
})


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; stored datetimes are always UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _to_column(value: Any) -> Any:
    """Convert a domain value into its column representation."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_to_column(v) for v in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class ProjectRepository(BaseRepository[ProjectRecord]):
    """
    Repository for Project aggregates.

    Every write is a single commit, so a service operation either persists
    all of its changes or none of them.
    """

    def __init__(self, session: Session):
        super().__init__(session, ProjectRecord)

    def exists(self, **criteria) -> bool:
        """Check if a project matching the criteria exists."""
        query = self.session.query(ProjectRecord)
        for field, value in criteria.items():
            query = query.filter(getattr(ProjectRecord, field) == _to_column(value))
        return query.first() is not None

    # =========================================================================
    # Mapping
    # =========================================================================

    @staticmethod
    def to_entity(record: ProjectRecord) -> Project:
        """Build an immutable Project from its row."""
        return Project(
            id=record.id,
            project_number=record.project_number,
            title=record.title,
            type=ProjectType(record.type),
            status=ProjectStatus(record.status),
            client_id=record.client_id,
            configuration=Configuration.from_dict(record.configuration),
            configuration_snapshots=[
                ConfigurationSnapshot.from_dict(s) for s in record.configuration_snapshots or []
            ],
            quotes=[ProjectQuote.from_dict(q) for q in record.quotes or []],
            current_quote_id=record.current_quote_id,
            amendments=[ProjectAmendment.from_dict(a) for a in record.amendments or []],
            bom_snapshots=[BOMSnapshot.from_dict(b) for b in record.bom_snapshots or []],
            created_at=_as_utc(record.created_at),
            created_by=record.created_by,
            updated_at=_as_utc(record.updated_at),
            archived_at=_as_utc(record.archived_at),
            archived_by=record.archived_by,
            archive_reason=record.archive_reason,
            version=record.version,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_by_id(self, project_id: str) -> Optional[Project]:
        """
        Load a project aggregate.

        Args:
            project_id: Project identifier

        Returns:
            Project if found, None otherwise
        """
        record = self.find_record(project_id)
        return self.to_entity(record) if record else None

    def get_by_number(self, project_number: str) -> Optional[Project]:
        record = self.session.query(ProjectRecord).filter(
            ProjectRecord.project_number == project_number
        ).first()
        return self.to_entity(record) if record else None

    def get_all(self) -> List[Project]:
        records = self.session.query(ProjectRecord).order_by(
            ProjectRecord.created_at, ProjectRecord.project_number
        ).all()
        return [self.to_entity(r) for r in records]

    def get_active(self) -> List[Project]:
        """All projects that are not archived."""
        records = self.session.query(ProjectRecord).filter(
            ProjectRecord.archived_at.is_(None)
        ).order_by(ProjectRecord.created_at, ProjectRecord.project_number).all()
        return [self.to_entity(r) for r in records]

    def next_project_number(self, year: int) -> str:
        """
        Next free project number for a year, e.g. 'PRJ-2026-0007'.

        Args:
            year: Calendar year the project is created in

        Returns:
            Project number one above the highest existing sequence
        """
        prefix = f"{get_config().project_number_prefix}-{year}-"
        numbers = self.session.query(ProjectRecord.project_number).filter(
            ProjectRecord.project_number.like(f"{prefix}%")
        ).all()
        pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
        highest = 0
        for (number,) in numbers:
            match = pattern.match(number)
            if match:
                highest = max(highest, int(match.group(1)))
        return f"{prefix}{highest + 1:04d}"

    # =========================================================================
    # Writes
    # =========================================================================

    def create(self, project: Project) -> Project:
        """Persist a new project aggregate."""
        record = ProjectRecord(
            id=project.id,
            project_number=project.project_number,
            title=project.title,
            type=project.type.value,
            status=project.status.value,
            client_id=project.client_id,
            configuration=project.configuration.to_dict(),
            configuration_snapshots=_to_column(project.configuration_snapshots),
            quotes=_to_column(project.quotes),
            current_quote_id=project.current_quote_id,
            amendments=_to_column(project.amendments),
            bom_snapshots=_to_column(project.bom_snapshots),
            created_at=_to_column(project.created_at),
            created_by=project.created_by,
            updated_at=_to_column(project.updated_at),
            version=project.version,
        )
        try:
            self.add(record)
            self.commit()
        except SQLAlchemyError:
            self.rollback()
            raise
        logger.info(f"Created project {project.project_number} ({project.id})")
        return self.to_entity(record)

    def update(
        self,
        project_id: str,
        changes: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Optional[Project]:
        """
        Atomically apply changes to a project.

        Args:
            project_id: Project identifier
            changes: Aggregate field name -> new domain value
            expected_version: Version the caller loaded; the write is refused
                when the stored version differs

        Returns:
            The updated Project, or None when the project does not exist

        Raises:
            ValueError: If changes names a field that cannot be updated
            ConcurrencyError: If expected_version is stale
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update project fields: {sorted(unknown)}")

        values = {getattr(ProjectRecord, key): _to_column(value) for key, value in changes.items()}
        values[ProjectRecord.updated_at] = _to_column(utcnow())
        values[ProjectRecord.version] = ProjectRecord.version + 1

        query = self.session.query(ProjectRecord).filter(ProjectRecord.id == project_id)
        if expected_version is not None:
            query = query.filter(ProjectRecord.version == expected_version)

        try:
            rowcount = query.update(values, synchronize_session=False)
            if rowcount == 0:
                self.rollback()
                if self.exists(id=project_id):
                    logger.warning(
                        f"Stale write on project {project_id}: expected version {expected_version}"
                    )
                    raise ConcurrencyError("Project", project_id)
                return None
            self.commit()
        except SQLAlchemyError:
            self.rollback()
            raise

        self.session.expire_all()
        return self.get_by_id(project_id)
