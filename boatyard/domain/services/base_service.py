"""
Shared load/save plumbing for services that operate on the Project aggregate.
"""
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from boatyard.domain.entities.project import Project
from boatyard.domain.exceptions import PersistenceError, ProjectNotFoundError
from boatyard.infrastructure.repositories.project_repository import ProjectRepository
from .settings_service import SettingsService


class ProjectAggregateService:
    """
    Base for services that read a project, compute new state in memory and
    write it back in one repository update.
    """

    def __init__(
        self,
        session: Session,
        repository: Optional[ProjectRepository] = None,
        settings: Optional[SettingsService] = None,
    ):
        self.session = session
        self.repository = repository or ProjectRepository(session)
        self.settings = settings or SettingsService(session)

    def _load(self, project_id: str) -> Project:
        project = self.repository.get_by_id(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def _save(self, project: Project, changes: Dict[str, Any]) -> Project:
        """Write changes guarded by the version the project was loaded at."""
        updated = self.repository.update(project.id, changes, expected_version=project.version)
        if updated is None:
            raise PersistenceError(f"Failed to save project {project.project_number}")
        return updated
