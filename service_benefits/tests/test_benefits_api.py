"""
Tests for the Benefits service.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from service_benefits.app.main import BenefitsService
from shared.test_helpers import get_test_config, test_data_factory

KNOWN_EMPLOYEE = "E1"


class WorkersStub:
    """Workers service double: knows one employee, or is down."""

    def __init__(self, down=False):
        self.down = down
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.url.path)
        if self.down:
            raise httpx.ReadTimeout("workers timed out", request=request)
        if request.url.path == f"/api/workers/{KNOWN_EMPLOYEE}":
            return httpx.Response(200, json={"id": KNOWN_EMPLOYEE, "name": "Maria Silva"})
        return httpx.Response(404, json={"status": "error", "statusCode": 404, "message": "Worker not found"})


def make_client(workers):
    service = BenefitsService(
        get_test_config("benefits", 3002),
        workers_transport=httpx.MockTransport(workers),
    )
    return TestClient(service.app, raise_server_exceptions=False), service


@pytest.fixture
def workers():
    return WorkersStub()


@pytest.fixture
def client(workers):
    client, _ = make_client(workers)
    return client


def create_type(client, **overrides):
    response = client.post("/api/benefit-types", json=test_data_factory.benefit_type_payload(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


class TestBenefitTypes:
    """Benefit type catalogue endpoints."""

    def test_create_and_get(self, client):
        benefit_type = create_type(client)

        assert benefit_type["hasDiscount"] is True
        assert benefit_type["discountPercentage"] == 6
        assert benefit_type["status"] == "active"
        fetched = client.get(f"/api/benefit-types/{benefit_type['id']}").json()
        assert fetched["name"] == "Vale Transporte"

    def test_discount_percentage_bounds(self, client):
        response = client.post(
            "/api/benefit-types", json=test_data_factory.benefit_type_payload(discountPercentage=150)
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "discountPercentage"

    def test_update_deactivate_delete(self, client):
        benefit_type = create_type(client)
        type_id = benefit_type["id"]

        updated = client.put(f"/api/benefit-types/{type_id}", json={"defaultValue": 250}).json()
        assert updated["defaultValue"] == 250
        assert updated["name"] == "Vale Transporte"

        deactivated = client.patch(f"/api/benefit-types/{type_id}/deactivate").json()
        assert deactivated["status"] == "inactive"
        assert client.get("/api/benefit-types", params={"status": "active"}).json() == []

        assert client.delete(f"/api/benefit-types/{type_id}").status_code == 204
        response = client.get(f"/api/benefit-types/{type_id}")
        assert response.status_code == 404
        assert response.json()["message"] == "Benefit type not found"


class TestEmployeeBenefits:
    """Employee benefit endpoints and the employee reference check."""

    def test_create_defaults_value_from_type(self, client, workers):
        benefit_type = create_type(client)

        response = client.post("/api/employee-benefits", json={
            "employeeId": KNOWN_EMPLOYEE,
            "benefitTypeId": benefit_type["id"],
        })

        assert response.status_code == 201
        benefit = response.json()
        assert benefit["value"] == 200
        assert benefit["status"] == "active"
        assert benefit["startDate"] is not None
        assert benefit["benefitType"]["name"] == "Vale Transporte"
        assert workers.calls == [f"/api/workers/{KNOWN_EMPLOYEE}"]

    def test_explicit_value_is_kept(self, client):
        benefit_type = create_type(client)

        benefit = client.post("/api/employee-benefits", json={
            "employeeId": KNOWN_EMPLOYEE,
            "benefitTypeId": benefit_type["id"],
            "value": 350.5,
        }).json()

        assert benefit["value"] == 350.5

    def test_unknown_benefit_type(self, client):
        response = client.post("/api/employee-benefits", json={
            "employeeId": KNOWN_EMPLOYEE,
            "benefitTypeId": "missing",
        })
        assert response.status_code == 404
        assert response.json()["message"] == "Benefit type not found"

    def test_duplicate_active_benefit_is_conflict(self, client):
        benefit_type = create_type(client)
        payload = {"employeeId": KNOWN_EMPLOYEE, "benefitTypeId": benefit_type["id"]}

        assert client.post("/api/employee-benefits", json=payload).status_code == 201
        response = client.post("/api/employee-benefits", json=payload)

        assert response.status_code == 409
        assert response.json()["message"] == "Employee already has this benefit active"

    def test_deactivated_benefit_can_be_granted_again(self, client):
        benefit_type = create_type(client)
        payload = {"employeeId": KNOWN_EMPLOYEE, "benefitTypeId": benefit_type["id"]}
        first = client.post("/api/employee-benefits", json=payload).json()

        deactivated = client.patch(f"/api/employee-benefits/{first['id']}/deactivate").json()
        assert deactivated["status"] == "inactive"
        assert deactivated["endDate"] is not None

        assert client.post("/api/employee-benefits", json=payload).status_code == 201

    def test_unknown_employee_fails_closed(self, client):
        benefit_type = create_type(client)

        response = client.post("/api/employee-benefits", json={
            "employeeId": "ghost",
            "benefitTypeId": benefit_type["id"],
        })

        assert response.status_code == 404
        assert response.json() == {"status": "error", "statusCode": 404, "message": "Employee not found"}
        assert client.get("/api/employee-benefits").json() == []

    def test_list_for_unknown_employee_fails_closed(self, client):
        response = client.get("/api/employee-benefits/employee/ghost")
        assert response.status_code == 404
        assert response.json()["message"] == "Employee not found"

    def test_workers_down_fails_open(self):
        workers = WorkersStub(down=True)
        client, service = make_client(workers)
        benefit_type = create_type(client)

        response = client.post("/api/employee-benefits", json={
            "employeeId": "E7",
            "benefitTypeId": benefit_type["id"],
        })

        assert response.status_code == 201
        assert response.json()["employeeId"] == "E7"
        assert len(workers.calls) == 2
        assert service.metrics.registry.get_sample_value(
            "reference_checks_total", {"entity": "employee", "outcome": "unverified"}
        ) == 1.0

    def test_list_for_employee(self, client):
        vt = create_type(client)
        meal = create_type(client, name="Vale Refeicao", hasDiscount=False, discountPercentage=None)
        client.post("/api/employee-benefits", json={"employeeId": KNOWN_EMPLOYEE, "benefitTypeId": vt["id"]})
        client.post("/api/employee-benefits", json={"employeeId": KNOWN_EMPLOYEE, "benefitTypeId": meal["id"]})

        benefits = client.get(f"/api/employee-benefits/employee/{KNOWN_EMPLOYEE}").json()

        assert sorted(b["benefitType"]["name"] for b in benefits) == ["Vale Refeicao", "Vale Transporte"]

    def test_update_and_delete(self, client):
        benefit_type = create_type(client)
        benefit = client.post("/api/employee-benefits", json={
            "employeeId": KNOWN_EMPLOYEE,
            "benefitTypeId": benefit_type["id"],
        }).json()

        updated = client.put(f"/api/employee-benefits/{benefit['id']}", json={"value": 180}).json()
        assert updated["value"] == 180

        assert client.delete(f"/api/employee-benefits/{benefit['id']}").status_code == 204
        response = client.get(f"/api/employee-benefits/{benefit['id']}")
        assert response.status_code == 404
        assert response.json()["message"] == "Employee benefit not found"
