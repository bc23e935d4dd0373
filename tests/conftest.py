"""
Shared fixtures: in-memory database, services and projects at each lifecycle stage.
"""
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from boatyard.models import Base
from boatyard.domain.audit import AuditContext
from boatyard.domain.entities import ConfigurationItemInput, ProjectInput, ProjectStatus
from boatyard.domain.services import (
    AmendmentService,
    BOMService,
    ConfigurationService,
    ProjectService,
    QuoteService,
    SettingsService,
)


# =============================================================================
# Database & Services
# =============================================================================

@pytest.fixture(scope="function")
def test_db():
    """Create a test database with fresh tables for each test."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    session = Session()

    yield session

    session.close()
    Base.metadata.drop_all(engine)


@pytest.fixture
def context():
    return AuditContext(user_id="u-anna", user_name="Anna de Vries")


@pytest.fixture
def project_service(test_db):
    return ProjectService(test_db)


@pytest.fixture
def configuration_service(test_db):
    return ConfigurationService(test_db)


@pytest.fixture
def quote_service(test_db):
    return QuoteService(test_db)


@pytest.fixture
def amendment_service(test_db):
    return AmendmentService(test_db)


@pytest.fixture
def bom_service(test_db):
    return BOMService(test_db)


@pytest.fixture
def settings_service(test_db):
    return SettingsService(test_db)


# =============================================================================
# Builders
# =============================================================================

def item_input(name="Electric Motor 40kW", quantity="1", price="1000.00", cost=None, **kwargs):
    """ConfigurationItemInput with sensible defaults."""
    return ConfigurationItemInput(
        name=name,
        quantity=Decimal(quantity),
        unit_price_excl_vat=Decimal(price),
        unit_cost=Decimal(cost) if cost is not None else None,
        **kwargs,
    )


def add_items(configuration_service, project_id, context, *inputs):
    result = None
    for entry in inputs:
        result = configuration_service.add_item(project_id, entry, context)
        assert result.ok, result.error
    return result.value


def accept_offer(project_service, quote_service, project_id, context):
    """Walk a DRAFT project with items to OFFER_SENT with an ACCEPTED quote."""
    quote = quote_service.create_draft(project_id, context).unwrap()
    project_service.transition_status(project_id, ProjectStatus.QUOTED, context).unwrap()
    quote_service.mark_as_sent(project_id, quote.id, context).unwrap()
    project_service.transition_status(
        project_id, ProjectStatus.OFFER_SENT, context, confirm_effects=True
    ).unwrap()
    quote_service.mark_as_accepted(project_id, quote.id, context).unwrap()
    return project_service.get_by_id(project_id).unwrap()


def confirm_order(project_service, quote_service, project_id, context):
    accept_offer(project_service, quote_service, project_id, context)
    return project_service.transition_status(
        project_id, ProjectStatus.ORDER_CONFIRMED, context, confirm_effects=True
    ).unwrap()


# =============================================================================
# Projects at lifecycle stages
# =============================================================================

@pytest.fixture
def draft_project(project_service, context):
    """Empty DRAFT project."""
    result = project_service.create(
        ProjectInput(title="Eagle 28 TS for Jansen", client_id="client-042"),
        context,
    )
    assert result.ok, result.error
    return result.value


@pytest.fixture
def project_with_items(draft_project, configuration_service, context):
    """DRAFT project with a motor (known supplier cost) and a battery pack (no cost)."""
    return add_items(
        configuration_service, draft_project.id, context,
        item_input("Electric Motor 40kW", quantity="1", price="8000.00", cost="5200.00",
                   category="Propulsion", lead_time_days=42),
        item_input("Battery Pack 60kWh", quantity="2", price="1000.00",
                   category="Electrical", lead_time_days=21),
    )


@pytest.fixture
def accepted_project(project_with_items, project_service, quote_service, context):
    """OFFER_SENT project whose only quote is ACCEPTED."""
    return accept_offer(project_service, quote_service, project_with_items.id, context)


@pytest.fixture
def confirmed_project(accepted_project, project_service, context):
    """ORDER_CONFIRMED project: configuration frozen, BOM baseline generated."""
    return project_service.transition_status(
        accepted_project.id, ProjectStatus.ORDER_CONFIRMED, context, confirm_effects=True
    ).unwrap()


@pytest.fixture
def closed_project(confirmed_project, project_service, context):
    """Project walked through production and delivery to CLOSED."""
    for status in (
        ProjectStatus.IN_PRODUCTION,
        ProjectStatus.READY_FOR_DELIVERY,
        ProjectStatus.DELIVERED,
        ProjectStatus.CLOSED,
    ):
        project_service.transition_status(
            confirmed_project.id, status, context, confirm_effects=True
        ).unwrap()
    return project_service.get_by_id(confirmed_project.id).unwrap()
