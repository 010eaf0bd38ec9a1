"""
Lookups against the workers and benefits services.
"""

from typing import Any, Dict, List, Optional

from shared.errors import InternalError, NotFoundError, UpstreamUnavailableError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.service_client import ServiceClient


class WorkerDirectory:
    """Employee records owned by the workers service.

    The payroll cannot be computed without the employee, so every failure
    here is a hard failure: a confirmed 404 becomes ``NotFoundError`` and
    anything else ``InternalError``.
    """

    def __init__(self, client: ServiceClient):
        self.client = client
        self.logger = get_logger("payroll.worker_directory")

    async def get_employee(self, employee_id: str) -> Dict[str, Any]:
        try:
            employee = await self.client.get_json(f"/api/workers/{employee_id}")
        except UpstreamUnavailableError as exc:
            self.logger.error("Error fetching employee", employee_id=employee_id, error=exc.detail)
            raise InternalError("Could not fetch employee information") from exc

        if employee is None:
            raise NotFoundError("Employee not found")
        return employee

    async def list_employees(self) -> List[Dict[str, Any]]:
        try:
            employees = await self.client.get_json("/api/workers")
        except UpstreamUnavailableError as exc:
            self.logger.error("Error fetching employees", error=exc.detail)
            raise InternalError("Could not fetch employees") from exc

        if not isinstance(employees, list):
            raise InternalError("Could not fetch employees")
        return employees


class BenefitsDirectory:
    """Benefits attached to employees, owned by the benefits service.

    Benefits only lower the net salary, so a failed lookup degrades to "no
    benefits" with a warning instead of failing the payroll.
    """

    def __init__(self, client: ServiceClient, metrics: Optional[MetricsCollector] = None):
        self.client = client
        self.metrics = metrics
        self.logger = get_logger("payroll.benefits_directory")

    async def benefits_for(self, employee_id: str) -> List[Dict[str, Any]]:
        """Active benefits of ``employee_id``; empty when they cannot be fetched."""
        try:
            benefits = await self.client.get_json(f"/api/employee-benefits/employee/{employee_id}")
        except UpstreamUnavailableError as exc:
            self._degraded(employee_id, exc.detail)
            return []

        if not isinstance(benefits, list):
            self._degraded(employee_id, "not found" if benefits is None else "unexpected body")
            return []
        return [b for b in benefits if isinstance(b, dict) and b.get("status") == "active"]

    def _degraded(self, employee_id: str, detail: Optional[str]) -> None:
        self.logger.warning(
            "Could not fetch employee benefits, proceeding without them",
            employee_id=employee_id,
            detail=detail,
        )
        if self.metrics:
            self.metrics.increment_counter("reference_checks_total", entity="benefits", outcome="unverified")
