"""
Tests for the REST API endpoints.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from boatyard.main import app
from boatyard.models import Base, get_db


HEADERS = {"X-User-Id": "u-anna", "X-User-Name": "Anna de Vries"}

MOTOR = {
    "name": "Electric Motor 40kW",
    "quantity": "1",
    "unit_price_excl_vat": "8000.00",
    "unit_cost": "5200.00",
    "category": "Propulsion",
    "lead_time_days": 42,
}
BATTERY = {
    "name": "Battery Pack 60kWh",
    "quantity": "2",
    "unit_price_excl_vat": "1000.00",
    "category": "Electrical",
}


@pytest.fixture
def client():
    """Test client backed by a private in-memory database."""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


def _create_project(client):
    response = client.post(
        "/api/v1/projects",
        json={"title": "Eagle 28 TS for Jansen", "client_id": "client-042"},
        headers=HEADERS,
    )
    assert response.status_code == 201
    return response.json()


def _transition(client, project_id, target, confirm=False):
    return client.post(
        f"/api/v1/projects/{project_id}/transitions",
        json={"target": target, "confirm_effects": confirm},
        headers=HEADERS,
    )


@pytest.fixture
def project(client):
    project = _create_project(client)
    for item in (MOTOR, BATTERY):
        response = client.post(f"/api/v1/projects/{project['id']}/configuration/items", json=item, headers=HEADERS)
        assert response.status_code == 201
    return project


@pytest.fixture
def confirmed(client, project):
    """Project walked through quoting to ORDER_CONFIRMED over the API."""
    pid = project["id"]
    quote = client.post(f"/api/v1/projects/{pid}/quotes", json={}, headers=HEADERS).json()
    assert _transition(client, pid, "QUOTED").status_code == 200
    assert client.post(f"/api/v1/projects/{pid}/quotes/{quote['id']}/send", headers=HEADERS).status_code == 200
    assert _transition(client, pid, "OFFER_SENT", confirm=True).status_code == 200
    assert client.post(f"/api/v1/projects/{pid}/quotes/{quote['id']}/accept", headers=HEADERS).status_code == 200
    response = _transition(client, pid, "ORDER_CONFIRMED", confirm=True)
    assert response.status_code == 200
    return response.json()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestProjects:
    """Tests for /api/v1/projects"""

    def test_create_project(self, client):
        data = _create_project(client)

        assert data["status"] == "DRAFT"
        assert data["project_number"].startswith("PRJ-")
        assert data["created_by"] == "u-anna"

    def test_create_requires_title(self, client):
        response = client.post("/api/v1/projects", json={"title": "  ", "client_id": "c"})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    def test_list_projects(self, client, project):
        data = client.get("/api/v1/projects").json()
        assert data["total"] == 1
        assert data["projects"][0]["id"] == project["id"]

    def test_get_missing_project(self, client):
        response = client.get("/api/v1/projects/missing")
        assert response.status_code == 404

    def test_next_statuses(self, client, project):
        data = client.get(f"/api/v1/projects/{project['id']}/next-statuses").json()
        assert data == {"statuses": ["QUOTED"]}

    def test_invalid_transition(self, client):
        project = _create_project(client)
        response = _transition(client, project["id"], "QUOTED")
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "INVALID_TRANSITION"

    def test_preview_transition(self, client, project):
        data = client.get(f"/api/v1/projects/{project['id']}/transitions/QUOTED").json()
        assert data["is_valid"] is True
        assert data["requires_confirmation"] is False


class TestConfiguration:
    """Tests for /api/v1/projects/{id}/configuration"""

    def test_add_item_totals(self, client, project):
        data = client.get(f"/api/v1/projects/{project['id']}").json()
        configuration = data["configuration"]
        assert configuration["subtotal_excl_vat"] == "10000.00"
        assert configuration["total_incl_vat"] == "12100.00"

    def test_update_item(self, client, project):
        item = client.get(f"/api/v1/projects/{project['id']}").json()["configuration"]["items"][1]

        response = client.patch(
            f"/api/v1/projects/{project['id']}/configuration/items/{item['id']}",
            json={"quantity": "3"},
            headers=HEADERS,
        )

        assert response.status_code == 200
        assert response.json()["subtotal_excl_vat"] == "11000.00"

    def test_malformed_update_is_400(self, client, project):
        item = client.get(f"/api/v1/projects/{project['id']}").json()["configuration"]["items"][1]

        for body in ({"quantity": "abc"}, {"quantity": "NaN"}, {"name": 5}):
            response = client.patch(
                f"/api/v1/projects/{project['id']}/configuration/items/{item['id']}",
                json=body,
                headers=HEADERS,
            )
            assert response.status_code == 400
            assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    def test_frozen_configuration_conflict(self, client, confirmed):
        response = client.post(
            f"/api/v1/projects/{confirmed['id']}/configuration/items", json=BATTERY, headers=HEADERS
        )
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "POLICY_ERROR"


class TestLifecycle:
    """Tests for quotes, amendments and BOM over the API."""

    def test_confirmation_freezes(self, confirmed):
        assert confirmed["status"] == "ORDER_CONFIRMED"
        assert confirmed["configuration"]["is_frozen"] is True

    def test_amendment(self, client, confirmed):
        pid = confirmed["id"]
        battery = confirmed["configuration"]["items"][1]

        response = client.post(
            f"/api/v1/projects/{pid}/amendments",
            json={
                "type": "EQUIPMENT_CHANGE",
                "reason": "Client wants a single battery",
                "items_to_update": [{"item_id": battery["id"], "updates": {"quantity": "1"}}],
            },
            headers=HEADERS,
        )

        assert response.status_code == 201
        assert response.json()["price_impact_excl_vat"] == "-1000.00"
        listing = client.get(f"/api/v1/projects/{pid}/amendments").json()
        assert listing["total"] == 1
        assert listing["total_price_impact_excl_vat"] == "-1000.00"

    def test_configuration_snapshots(self, client, confirmed):
        data = client.get(f"/api/v1/projects/{confirmed['id']}/configuration/snapshots").json()

        assert data["total"] == 1
        assert data["snapshots"][0]["trigger"] == "ORDER_CONFIRMED"

    def test_unknown_amendment_type_is_400(self, client, confirmed):
        response = client.post(
            f"/api/v1/projects/{confirmed['id']}/amendments",
            json={
                "type": "HULL_SWAP",
                "reason": "Different hull",
                "items_to_add": [{"name": "Flag Pole", "quantity": "1", "unit_price_excl_vat": "45.00"}],
            },
            headers=HEADERS,
        )
        assert response.status_code == 422

    def test_latest_bom(self, client, confirmed):
        data = client.get(f"/api/v1/projects/{confirmed['id']}/bom/latest").json()

        assert data["bom"]["snapshot_number"] == 1
        assert data["estimation"]["estimated_count"] == 1
        assert data["critical_path"][0]["name"] == "Electric Motor 40kW"

    def test_bom_csv(self, client, confirmed):
        response = client.get(f"/api/v1/projects/{confirmed['id']}/bom/latest/csv")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "Cost Type" in response.text.splitlines()[0]

    def test_no_bom_is_404(self, client, project):
        response = client.get(f"/api/v1/projects/{project['id']}/bom/latest")
        assert response.status_code == 404


class TestSettings:
    """Tests for /api/v1/settings"""

    def test_defaults(self, client):
        data = client.get("/api/v1/settings").json()
        assert data["cost_estimation"]["default_ratio"] == "0.6"
        assert data["quote_validity_days"] == 30

    def test_update_cost_estimation(self, client):
        response = client.put("/api/v1/settings/cost-estimation", json={"default_ratio": "0.55"})
        assert response.status_code == 200
        assert response.json()["default_ratio"] == "0.55"

    def test_ratio_out_of_range(self, client):
        response = client.put("/api/v1/settings/cost-estimation", json={"default_ratio": "1.5"})
        assert response.status_code == 400
