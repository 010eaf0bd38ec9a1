"""
Benefit business operations.
"""

from datetime import datetime, timezone
from typing import List, Optional

from shared.consistency import ReferenceChecker
from shared.errors import NotFoundError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .models import (
    BenefitStatus,
    BenefitType,
    BenefitTypeCreate,
    BenefitTypeUpdate,
    EmployeeBenefit,
    EmployeeBenefitCreate,
    EmployeeBenefitRecord,
    EmployeeBenefitUpdate,
)
from .repository import BenefitTypeRepository, EmployeeBenefitRepository


class BenefitTypeService:
    """Benefit type catalogue."""

    def __init__(self, repository: BenefitTypeRepository):
        self.repository = repository

    async def get_all(self, status: Optional[BenefitStatus] = None) -> List[BenefitType]:
        return await self.repository.find_all(status)

    async def get_by_id(self, type_id: str) -> BenefitType:
        benefit_type = await self.repository.find_by_id(type_id)
        if benefit_type is None:
            raise NotFoundError("Benefit type not found")
        return benefit_type

    async def create(self, data: BenefitTypeCreate) -> BenefitType:
        return await self.repository.create(data)

    async def update(self, type_id: str, changes: BenefitTypeUpdate) -> BenefitType:
        benefit_type = await self.repository.update(type_id, changes.model_dump(exclude_unset=True))
        if benefit_type is None:
            raise NotFoundError("Benefit type not found")
        return benefit_type

    async def deactivate(self, type_id: str) -> BenefitType:
        benefit_type = await self.repository.update(type_id, {"status": BenefitStatus.INACTIVE})
        if benefit_type is None:
            raise NotFoundError("Benefit type not found")
        return benefit_type

    async def delete(self, type_id: str) -> None:
        if not await self.repository.delete(type_id):
            raise NotFoundError("Benefit type not found")


class EmployeeBenefitService:
    """Benefits attached to employees owned by the workers service."""

    def __init__(
        self,
        repository: EmployeeBenefitRepository,
        types: BenefitTypeRepository,
        employees: ReferenceChecker,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.repository = repository
        self.types = types
        self.employees = employees
        self.metrics = metrics
        self.logger = get_logger("benefits.employee_benefits")

    async def _expand(self, record: EmployeeBenefitRecord) -> EmployeeBenefit:
        benefit_type = await self.types.find_by_id(record.benefit_type_id)
        return EmployeeBenefit(**record.model_dump(), benefit_type=benefit_type)

    async def _expand_all(self, records: List[EmployeeBenefitRecord]) -> List[EmployeeBenefit]:
        return [await self._expand(record) for record in records]

    async def get_all(self, status: Optional[BenefitStatus] = None) -> List[EmployeeBenefit]:
        return await self._expand_all(await self.repository.find_all(status=status))

    async def get_by_id(self, benefit_id: str) -> EmployeeBenefit:
        record = await self.repository.find_by_id(benefit_id)
        if record is None:
            raise NotFoundError("Employee benefit not found")
        return await self._expand(record)

    async def get_by_employee(self, employee_id: str) -> List[EmployeeBenefit]:
        """Benefits of one employee; 404 only when the employee is confirmed absent."""
        await self.employees.ensure_exists(employee_id)
        return await self._expand_all(await self.repository.find_all(employee_id=employee_id))

    async def create(self, data: EmployeeBenefitCreate) -> EmployeeBenefit:
        await self.employees.ensure_exists(data.employee_id)

        benefit_type = await self.types.find_by_id(data.benefit_type_id)
        if benefit_type is None:
            raise NotFoundError("Benefit type not found")

        fields = data.model_dump()
        if not fields["value"]:
            fields["value"] = benefit_type.default_value
        if fields["start_date"] is None:
            fields["start_date"] = datetime.now(timezone.utc)

        record = await self.repository.create(fields)
        self.logger.info(
            "Employee benefit created",
            benefit_id=record.id,
            employee_id=record.employee_id,
            benefit_type_id=record.benefit_type_id,
        )
        if self.metrics:
            self.metrics.record_business_event("employee_benefit_created")
        return EmployeeBenefit(**record.model_dump(), benefit_type=benefit_type)

    async def update(self, benefit_id: str, changes: EmployeeBenefitUpdate) -> EmployeeBenefit:
        record = await self.repository.update(benefit_id, changes.model_dump(exclude_unset=True))
        if record is None:
            raise NotFoundError("Employee benefit not found")
        return await self._expand(record)

    async def deactivate(self, benefit_id: str) -> EmployeeBenefit:
        record = await self.repository.update(benefit_id, {
            "status": BenefitStatus.INACTIVE,
            "end_date": datetime.now(timezone.utc),
        })
        if record is None:
            raise NotFoundError("Employee benefit not found")
        return await self._expand(record)

    async def delete(self, benefit_id: str) -> None:
        if not await self.repository.delete(benefit_id):
            raise NotFoundError("Employee benefit not found")
