"""
Payroll service for the HR services platform.
"""

from typing import List, Optional

import httpx
from fastapi import Query

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.service_client import ServiceClient
from service_payroll.app.calculator import PayrollCalculator
from service_payroll.app.clients import BenefitsDirectory, WorkerDirectory
from service_payroll.app.models import (
    MarkPaidResponse,
    MonthlyRunResult,
    PayrollRecord,
    ProcessMonthlyRequest,
    ProcessPayrollRequest,
)
from service_payroll.app.repository import (
    InMemoryPayrollRepository,
    PayrollRepository,
    PostgresPayrollRepository,
)
from service_payroll.app.service import PayrollService


class PayrollAPIService(BaseService):
    """Payroll service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        repository: Optional[PayrollRepository] = None,
        workers_transport: Optional[httpx.AsyncBaseTransport] = None,
        benefits_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__("payroll", 3003, config or get_config("payroll", 3003))

        self.workers_client = ServiceClient.from_config(
            "workers", self.config.worker_service_url, self.config, transport=workers_transport
        )
        self.benefits_client = ServiceClient.from_config(
            "benefits", self.config.benefits_service_url, self.config, transport=benefits_transport
        )
        self.repository = repository or self._create_repository()

        workers = WorkerDirectory(self.workers_client)
        benefits = BenefitsDirectory(self.benefits_client, metrics=self.metrics)
        self.payrolls = PayrollService(
            self.repository,
            PayrollCalculator(workers, benefits),
            workers,
            batch_concurrency=self.config.payroll_batch_concurrency,
            metrics=self.metrics,
        )

        self._setup_payroll_routes()
        self.app.state.payroll_service = self

    async def startup(self):
        if isinstance(self.repository, PostgresPayrollRepository):
            await self.repository.start()

    async def shutdown(self):
        await self.workers_client.close()
        await self.benefits_client.close()
        if isinstance(self.repository, PostgresPayrollRepository):
            await self.repository.stop()

    def _create_repository(self) -> PayrollRepository:
        if self.config.payroll_store == "postgres":
            if not self.config.postgres_dsn:
                raise ValueError("HR_POSTGRES_DSN is required when HR_PAYROLL_STORE=postgres")
            return PostgresPayrollRepository(self.config.postgres_dsn)
        return InMemoryPayrollRepository()

    def _setup_payroll_routes(self):
        """Set up payroll routes."""

        @self.app.get("/api/payroll", response_model=List[PayrollRecord], response_model_exclude_none=True)
        async def list_payrolls():
            return await self.payrolls.get_all()

        @self.app.get("/api/payroll/month", response_model=List[PayrollRecord],
                      response_model_exclude_none=True)
        async def list_payrolls_for_month(month: int = Query(..., ge=1, le=12),
                                          year: int = Query(..., ge=2000, le=2100)):
            return await self.payrolls.get_by_month_year(month, year)

        @self.app.post("/api/payroll/process", response_model=PayrollRecord, status_code=201,
                       response_model_exclude_none=True)
        async def process_payroll(payload: ProcessPayrollRequest):
            return await self.payrolls.process_payroll(
                payload.employee_id, payload.month, payload.year, payload.overtime_hours
            )

        @self.app.post("/api/payroll/process-monthly", response_model=MonthlyRunResult)
        async def process_monthly_payroll(payload: ProcessMonthlyRequest):
            result = await self.payrolls.process_monthly(payload.month, payload.year)
            result.message = (
                f"Monthly payroll processed successfully. {result.processed} employees processed."
            )
            return result

        @self.app.get("/api/payroll/{payroll_id}", response_model=PayrollRecord,
                      response_model_exclude_none=True)
        async def get_payroll(payroll_id: str):
            return await self.payrolls.get_by_id(payroll_id)

        @self.app.patch("/api/payroll/{payroll_id}/mark-paid", response_model=MarkPaidResponse,
                        response_model_exclude_none=True)
        async def mark_payroll_paid(payroll_id: str):
            payroll = await self.payrolls.mark_as_paid(payroll_id)
            return MarkPaidResponse(message="Payroll marked as paid", payroll=payroll)


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = PayrollAPIService(config, **kwargs)
    return service.app


if __name__ == "__main__":
    service = PayrollAPIService()
    service.run()
