"""
Benefits service for the HR services platform.
"""

from typing import List, Optional

import httpx
from fastapi import Response

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.consistency import employee_reference_checker
from shared.service_client import ServiceClient
from service_benefits.app.models import (
    BenefitStatus,
    BenefitType,
    BenefitTypeCreate,
    BenefitTypeUpdate,
    EmployeeBenefit,
    EmployeeBenefitCreate,
    EmployeeBenefitUpdate,
)
from service_benefits.app.repository import (
    BenefitTypeRepository,
    EmployeeBenefitRepository,
    InMemoryBenefitTypeRepository,
    InMemoryEmployeeBenefitRepository,
)
from service_benefits.app.service import BenefitTypeService, EmployeeBenefitService


class BenefitsService(BaseService):
    """Benefits service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        type_repository: Optional[BenefitTypeRepository] = None,
        benefit_repository: Optional[EmployeeBenefitRepository] = None,
        workers_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__("benefits", 3002, config or get_config("benefits", 3002))

        self.workers_client = ServiceClient.from_config(
            "workers", self.config.worker_service_url, self.config, transport=workers_transport
        )
        type_repository = type_repository or InMemoryBenefitTypeRepository()
        self.benefit_types = BenefitTypeService(type_repository)
        self.employee_benefits = EmployeeBenefitService(
            benefit_repository or InMemoryEmployeeBenefitRepository(),
            type_repository,
            employee_reference_checker(self.workers_client, metrics=self.metrics),
            metrics=self.metrics,
        )

        self._setup_benefit_type_routes()
        self._setup_employee_benefit_routes()
        self.app.state.benefits_service = self

    async def shutdown(self):
        await self.workers_client.close()

    def _setup_benefit_type_routes(self):
        """Set up benefit type routes."""

        @self.app.get("/api/benefit-types", response_model=List[BenefitType])
        async def list_benefit_types(status: Optional[BenefitStatus] = None):
            return await self.benefit_types.get_all(status)

        @self.app.post("/api/benefit-types", response_model=BenefitType, status_code=201)
        async def create_benefit_type(payload: BenefitTypeCreate):
            return await self.benefit_types.create(payload)

        @self.app.get("/api/benefit-types/{type_id}", response_model=BenefitType)
        async def get_benefit_type(type_id: str):
            return await self.benefit_types.get_by_id(type_id)

        @self.app.put("/api/benefit-types/{type_id}", response_model=BenefitType)
        async def update_benefit_type(type_id: str, payload: BenefitTypeUpdate):
            return await self.benefit_types.update(type_id, payload)

        @self.app.patch("/api/benefit-types/{type_id}/deactivate", response_model=BenefitType)
        async def deactivate_benefit_type(type_id: str):
            return await self.benefit_types.deactivate(type_id)

        @self.app.delete("/api/benefit-types/{type_id}", status_code=204)
        async def delete_benefit_type(type_id: str):
            await self.benefit_types.delete(type_id)
            return Response(status_code=204)

    def _setup_employee_benefit_routes(self):
        """Set up employee benefit routes."""

        @self.app.get("/api/employee-benefits", response_model=List[EmployeeBenefit])
        async def list_employee_benefits(status: Optional[BenefitStatus] = None):
            return await self.employee_benefits.get_all(status)

        @self.app.post("/api/employee-benefits", response_model=EmployeeBenefit, status_code=201)
        async def create_employee_benefit(payload: EmployeeBenefitCreate):
            return await self.employee_benefits.create(payload)

        @self.app.get("/api/employee-benefits/employee/{employee_id}", response_model=List[EmployeeBenefit])
        async def list_benefits_for_employee(employee_id: str):
            return await self.employee_benefits.get_by_employee(employee_id)

        @self.app.get("/api/employee-benefits/{benefit_id}", response_model=EmployeeBenefit)
        async def get_employee_benefit(benefit_id: str):
            return await self.employee_benefits.get_by_id(benefit_id)

        @self.app.put("/api/employee-benefits/{benefit_id}", response_model=EmployeeBenefit)
        async def update_employee_benefit(benefit_id: str, payload: EmployeeBenefitUpdate):
            return await self.employee_benefits.update(benefit_id, payload)

        @self.app.patch("/api/employee-benefits/{benefit_id}/deactivate", response_model=EmployeeBenefit)
        async def deactivate_employee_benefit(benefit_id: str):
            return await self.employee_benefits.deactivate(benefit_id)

        @self.app.delete("/api/employee-benefits/{benefit_id}", status_code=204)
        async def delete_employee_benefit(benefit_id: str):
            await self.employee_benefits.delete(benefit_id)
            return Response(status_code=204)


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = BenefitsService(config, **kwargs)
    return service.app


if __name__ == "__main__":
    service = BenefitsService()
    service.run()
