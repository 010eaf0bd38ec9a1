"""
Tests for the Payroll service.
"""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from service_payroll.app.main import PayrollAPIService
from service_payroll.app.models import PayrollCalculation
from service_payroll.app.repository import (
    DUPLICATE_PAYROLL,
    InMemoryPayrollRepository,
    PostgresPayrollRepository,
)
from shared.errors import ConflictError
from shared.test_helpers import get_test_config

EMPLOYEES = {
    "E1": {"id": "E1", "name": "Maria Silva", "contract": "CLT", "salary": "3000,00", "status": "active"},
    "E2": {"id": "E2", "name": "Joao Souza", "contract": "PJ", "salary": "5.000,00", "status": "active"},
    "E3": {"id": "E3", "name": "Ana Lima", "contract": "CLT", "salary": "2500", "status": "inactive"},
}

BENEFITS = {
    "E1": [
        {
            "id": "B1",
            "employeeId": "E1",
            "status": "active",
            "value": 200,
            "benefitType": {"name": "Vale Transporte", "hasDiscount": True, "discountPercentage": 6},
        },
        {
            "id": "B2",
            "employeeId": "E1",
            "status": "inactive",
            "value": 900,
            "benefitType": {"name": "Plano de Saude", "hasDiscount": True, "discountPercentage": 50},
        },
    ],
}


class WorkersStub:
    def __init__(self, employees=None, down=False):
        self.employees = dict(EMPLOYEES if employees is None else employees)
        self.down = down

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)
        path = request.url.path
        if path == "/api/workers":
            return httpx.Response(200, json=list(self.employees.values()))
        employee = self.employees.get(path.rsplit("/", 1)[-1])
        if employee is None:
            return httpx.Response(404, json={"status": "error", "statusCode": 404, "message": "Worker not found"})
        return httpx.Response(200, json=employee)


class BenefitsStub:
    def __init__(self, down=False):
        self.down = down
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.down:
            raise httpx.ReadTimeout("benefits timed out", request=request)
        employee_id = request.url.path.rsplit("/", 1)[-1]
        return httpx.Response(200, json=BENEFITS.get(employee_id, []))


def make_service(workers=None, benefits=None, repository=None):
    return PayrollAPIService(
        get_test_config("payroll", 3003),
        repository=repository,
        workers_transport=httpx.MockTransport(workers or WorkersStub()),
        benefits_transport=httpx.MockTransport(benefits or BenefitsStub()),
    )


@pytest.fixture
def service():
    return make_service()


@pytest.fixture
def client(service):
    return TestClient(service.app, raise_server_exceptions=False)


def process(client, employee_id="E1", month=3, year=2024, **extra):
    return client.post(
        "/api/payroll/process",
        json={"employeeId": employee_id, "month": month, "year": year, **extra},
    )


class TestProcessPayroll:
    """Single employee processing."""

    def test_clt_payroll(self, client):
        response = process(client, overtimeHours=10)

        assert response.status_code == 201
        payroll = response.json()
        assert payroll["employeeName"] == "Maria Silva"
        assert payroll["status"] == "processed"
        assert payroll["overtimePay"] == 204.55
        assert payroll["grossSalary"] == 3204.55
        assert payroll["benefits"] == [
            {"name": "Vale Transporte", "value": 200.0, "hasDiscount": True, "discountValue": 12.0}
        ]
        assert payroll["inss"] == 283.37
        assert payroll["irrf"] == 56.74
        assert payroll["fgts"] == 256.36
        assert payroll["deductions"] == 352.11
        assert payroll["totalSalary"] == 2852.44
        assert "paidAt" not in payroll

    def test_pj_payroll_omits_statutory_fields(self, client):
        payroll = process(client, employee_id="E2").json()

        assert payroll["grossSalary"] == 5000.0
        assert payroll["totalSalary"] == 5000.0
        for field in ("inss", "irrf", "fgts"):
            assert field not in payroll

    def test_duplicate_period_is_conflict(self, client):
        assert process(client).status_code == 201
        response = process(client)

        assert response.status_code == 409
        assert response.json()["message"] == DUPLICATE_PAYROLL
        assert process(client, month=4).status_code == 201

    def test_unknown_employee(self, client):
        response = process(client, employee_id="ghost")
        assert response.status_code == 404
        assert response.json()["message"] == "Employee not found"

    def test_workers_down_is_internal_error(self):
        client = TestClient(make_service(workers=WorkersStub(down=True)).app, raise_server_exceptions=False)

        response = process(client)

        assert response.status_code == 500
        assert response.json()["message"] == "Could not fetch employee information"

    def test_benefits_down_proceeds_without_benefits(self):
        benefits = BenefitsStub(down=True)
        service = make_service(benefits=benefits)
        client = TestClient(service.app, raise_server_exceptions=False)

        response = process(client, overtimeHours=10)

        assert response.status_code == 201
        payroll = response.json()
        assert payroll["benefits"] == []
        assert payroll["deductions"] == 340.11
        assert benefits.calls == 2
        assert service.metrics.registry.get_sample_value(
            "reference_checks_total", {"entity": "benefits", "outcome": "unverified"}
        ) == 1.0

    def test_invalid_salary(self):
        workers = WorkersStub({"E1": {**EMPLOYEES["E1"], "salary": "a combinar"}})
        client = TestClient(make_service(workers=workers).app, raise_server_exceptions=False)

        response = process(client)

        assert response.status_code == 400
        assert response.json()["message"] == "Employee record is incomplete or has an invalid salary"

    @pytest.mark.parametrize("payload", [
        {"employeeId": "E1", "month": 13, "year": 2024},
        {"employeeId": "E1", "month": 3, "year": 1999},
        {"employeeId": "E1", "month": 3, "year": 2024, "overtimeHours": -1},
        {"month": 3, "year": 2024},
    ])
    def test_invalid_request(self, client, payload):
        response = client.post("/api/payroll/process", json=payload)
        assert response.status_code == 400
        assert response.json()["message"] == "Validation error"


class TestMonthlyPayroll:
    """Batch processing of every active employee."""

    def test_processes_active_employees_only(self, client):
        response = client.post("/api/payroll/process-monthly", json={"month": 3, "year": 2024})

        assert response.status_code == 200
        assert response.json() == {
            "message": "Monthly payroll processed successfully. 2 employees processed.",
            "processed": 2,
            "errors": [],
        }
        payrolls = client.get("/api/payroll/month", params={"month": 3, "year": 2024}).json()
        assert sorted(p["employeeId"] for p in payrolls) == ["E1", "E2"]

    def test_rerun_replaces_period(self, client):
        process(client, overtimeHours=10)
        client.post("/api/payroll/process-monthly", json={"month": 3, "year": 2024})
        client.post("/api/payroll/process-monthly", json={"month": 3, "year": 2024})

        payrolls = client.get("/api/payroll/month", params={"month": 3, "year": 2024}).json()
        assert len(payrolls) == 2
        maria = next(p for p in payrolls if p["employeeId"] == "E1")
        assert maria["overtimeHours"] == 0

    def test_other_periods_are_kept(self, client):
        process(client, month=2)
        client.post("/api/payroll/process-monthly", json={"month": 3, "year": 2024})

        assert len(client.get("/api/payroll/month", params={"month": 2, "year": 2024}).json()) == 1
        assert len(client.get("/api/payroll").json()) == 3

    def test_failures_are_collected(self):
        employees = {**EMPLOYEES, "E4": {"id": "E4", "name": "Rui Costa", "contract": "CLT",
                                         "salary": "???", "status": "active"}}
        service = make_service(workers=WorkersStub(employees))
        client = TestClient(service.app, raise_server_exceptions=False)

        result = client.post("/api/payroll/process-monthly", json={"month": 3, "year": 2024}).json()

        assert result["processed"] == 2
        assert result["errors"] == [
            "Error processing payroll for Rui Costa: Employee record is incomplete or has an invalid salary"
        ]
        registry = service.metrics.registry
        assert registry.get_sample_value("payroll_batch_employees_total", {"outcome": "failed"}) == 1.0
        assert registry.get_sample_value("payroll_batch_employees_total", {"outcome": "processed"}) == 2.0
        assert registry.get_sample_value("payroll_batch_duration_seconds_count") == 1.0

    def test_workers_down_fails_the_batch(self):
        client = TestClient(make_service(workers=WorkersStub(down=True)).app, raise_server_exceptions=False)

        response = client.post("/api/payroll/process-monthly", json={"month": 3, "year": 2024})

        assert response.status_code == 500
        assert response.json()["message"] == "Could not fetch employees"


class TestPayrollQueries:
    """Lookup and settlement endpoints."""

    def test_get_by_id(self, client):
        payroll = process(client).json()

        assert client.get(f"/api/payroll/{payroll['id']}").json()["id"] == payroll["id"]
        missing = client.get("/api/payroll/missing")
        assert missing.status_code == 404
        assert missing.json()["message"] == "Payroll not found"

    def test_month_query_requires_both_params(self, client):
        assert client.get("/api/payroll/month", params={"month": 3}).status_code == 400

    def test_mark_as_paid(self, client):
        payroll = process(client).json()

        response = client.patch(f"/api/payroll/{payroll['id']}/mark-paid")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Payroll marked as paid"
        assert body["payroll"]["status"] == "paid"
        assert body["payroll"]["paidAt"] is not None
        assert client.patch("/api/payroll/missing/mark-paid").status_code == 404


class TestLifecycle:
    """Startup and shutdown of the payroll store."""

    def test_postgres_store_follows_app_lifespan(self):
        repository = PostgresPayrollRepository("postgresql://unused")
        repository.start = AsyncMock()
        repository.stop = AsyncMock()
        service = make_service(repository=repository)

        with TestClient(service.app) as client:
            repository.start.assert_awaited_once()
            repository.stop.assert_not_awaited()
            assert client.get("/health").status_code == 200

        repository.stop.assert_awaited_once()


class TestInMemoryPayrollRepository:
    """Uniqueness under concurrent writers."""

    @pytest.mark.asyncio
    async def test_concurrent_writes_for_same_period(self):
        repository = InMemoryPayrollRepository()
        calculation = PayrollCalculation(
            employee_id="E1",
            employee_name="Maria Silva",
            contract="CLT",
            base_salary=3000,
            overtime_hours=0,
            overtime_pay=0,
            gross_salary=3000,
            deductions=0,
            total_salary=3000,
        )

        results = await asyncio.gather(
            *(repository.create(calculation, 3, 2024) for _ in range(4)), return_exceptions=True
        )

        assert sum(1 for r in results if isinstance(r, ConflictError)) == 3
        assert len(await repository.find_by_month_year(3, 2024)) == 1

    @pytest.mark.asyncio
    async def test_delete_by_month_year(self):
        repository = InMemoryPayrollRepository()
        calculation = PayrollCalculation(
            employee_id="E1", employee_name="Maria Silva", contract="PJ", base_salary=1, overtime_hours=0,
            overtime_pay=0, gross_salary=1, deductions=0, total_salary=1,
        )
        await repository.create(calculation, 3, 2024)
        await repository.create(calculation, 4, 2024)

        assert await repository.delete_by_month_year(3, 2024) == 1
        assert await repository.find_by_employee_month_year("E1", 3, 2024) is None
        assert await repository.find_by_employee_month_year("E1", 4, 2024) is not None
