"""
Unit Tests for ProjectRepository.

Tests persistence rules:
- Aggregates survive a round trip through the JSON columns
- Stale writes are refused with a ConcurrencyError
"""
from decimal import Decimal

import pytest

from boatyard.domain.entities import ProjectStatus
from boatyard.domain.exceptions import ConcurrencyError
from boatyard.infrastructure.repositories import ProjectRepository


@pytest.fixture
def repository(test_db):
    return ProjectRepository(test_db)


class TestRoundTrip:
    """Tests for mapping rows to entities."""

    def test_configuration_round_trip(self, project_with_items, repository):
        loaded = repository.get_by_id(project_with_items.id)

        assert loaded.configuration.items == project_with_items.configuration.items
        assert loaded.configuration.subtotal_excl_vat == Decimal("10000.00")
        assert loaded.created_at.tzinfo is not None

    def test_confirmed_project_round_trip(self, confirmed_project, repository):
        loaded = repository.get_by_id(confirmed_project.id)

        assert loaded.status == ProjectStatus.ORDER_CONFIRMED
        assert loaded.quotes == confirmed_project.quotes
        assert loaded.bom_snapshots == confirmed_project.bom_snapshots
        assert loaded.configuration_snapshots[0].data.items == confirmed_project.configuration.items

    def test_get_by_number(self, draft_project, repository):
        assert repository.get_by_number(draft_project.project_number).id == draft_project.id
        assert repository.get_by_number("PRJ-1999-0001") is None

    def test_get_all_includes_archived(self, draft_project, project_service, repository, context):
        project_service.archive(draft_project.id, "Duplicate entry", context)

        assert [p.id for p in repository.get_all()] == [draft_project.id]
        assert repository.get_active() == []

    def test_missing_project(self, repository):
        assert repository.get_by_id("missing") is None
        assert repository.update("missing", {"title": "x"}) is None


class TestUpdate:
    """Tests for versioned updates."""

    def test_version_increments(self, draft_project, repository):
        updated = repository.update(draft_project.id, {"title": "Eagle 28 TS"}, expected_version=1)

        assert updated.title == "Eagle 28 TS"
        assert updated.version == 2

    def test_stale_version_rejected(self, draft_project, repository):
        repository.update(draft_project.id, {"title": "First writer"}, expected_version=1)

        with pytest.raises(ConcurrencyError):
            repository.update(draft_project.id, {"title": "Second writer"}, expected_version=1)

        assert repository.get_by_id(draft_project.id).title == "First writer"

    def test_unknown_field(self, draft_project, repository):
        with pytest.raises(ValueError):
            repository.update(draft_project.id, {"project_number": "PRJ-0"})

    def test_concurrent_service_edit_fails(self, project_with_items, repository, configuration_service, context):
        """An edit based on a stale load is reported, not silently lost."""
        stale = repository.get_by_id(project_with_items.id)
        repository.update(project_with_items.id, {"title": "Renamed"}, expected_version=stale.version)

        with pytest.raises(ConcurrencyError):
            configuration_service._save(stale, {"configuration": stale.configuration})
