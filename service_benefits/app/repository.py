"""
Benefit type and employee benefit stores.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from shared.errors import ConflictError

from .models import (
    BenefitStatus,
    BenefitType,
    BenefitTypeCreate,
    EmployeeBenefitRecord,
)


class BenefitTypeRepository(Protocol):
    async def find_all(self, status: Optional[BenefitStatus] = None) -> List[BenefitType]: ...

    async def find_by_id(self, type_id: str) -> Optional[BenefitType]: ...

    async def create(self, data: BenefitTypeCreate) -> BenefitType: ...

    async def update(self, type_id: str, fields: Dict) -> Optional[BenefitType]: ...

    async def delete(self, type_id: str) -> bool: ...


class EmployeeBenefitRepository(Protocol):
    async def find_all(self, employee_id: Optional[str] = None,
                       benefit_type_id: Optional[str] = None,
                       status: Optional[BenefitStatus] = None) -> List[EmployeeBenefitRecord]: ...

    async def find_by_id(self, benefit_id: str) -> Optional[EmployeeBenefitRecord]: ...

    async def create(self, fields: Dict) -> EmployeeBenefitRecord: ...

    async def update(self, benefit_id: str, fields: Dict) -> Optional[EmployeeBenefitRecord]: ...

    async def delete(self, benefit_id: str) -> bool: ...


class InMemoryBenefitTypeRepository:
    """Process-local benefit type store."""

    def __init__(self):
        self._types: Dict[str, BenefitType] = {}
        self._lock = asyncio.Lock()

    async def find_all(self, status: Optional[BenefitStatus] = None) -> List[BenefitType]:
        return [t for t in self._types.values() if status is None or t.status == status]

    async def find_by_id(self, type_id: str) -> Optional[BenefitType]:
        return self._types.get(type_id)

    async def create(self, data: BenefitTypeCreate) -> BenefitType:
        now = datetime.now(timezone.utc)
        benefit_type = BenefitType(id=uuid.uuid4().hex, created_at=now, updated_at=now, **data.model_dump())
        async with self._lock:
            self._types[benefit_type.id] = benefit_type
        return benefit_type

    async def update(self, type_id: str, fields: Dict) -> Optional[BenefitType]:
        async with self._lock:
            current = self._types.get(type_id)
            if current is None:
                return None
            updated = current.model_copy(update={**fields, "updated_at": datetime.now(timezone.utc)})
            self._types[type_id] = updated
        return updated

    async def delete(self, type_id: str) -> bool:
        async with self._lock:
            return self._types.pop(type_id, None) is not None


class InMemoryEmployeeBenefitRepository:
    """Process-local employee benefit store."""

    def __init__(self):
        self._benefits: Dict[str, EmployeeBenefitRecord] = {}
        self._lock = asyncio.Lock()

    async def find_all(self, employee_id: Optional[str] = None,
                       benefit_type_id: Optional[str] = None,
                       status: Optional[BenefitStatus] = None) -> List[EmployeeBenefitRecord]:
        return [
            b for b in self._benefits.values()
            if (employee_id is None or b.employee_id == employee_id)
            and (benefit_type_id is None or b.benefit_type_id == benefit_type_id)
            and (status is None or b.status == status)
        ]

    async def find_by_id(self, benefit_id: str) -> Optional[EmployeeBenefitRecord]:
        return self._benefits.get(benefit_id)

    async def create(self, fields: Dict) -> EmployeeBenefitRecord:
        """Insert a benefit; an employee holds at most one active benefit per type."""
        now = datetime.now(timezone.utc)
        record = EmployeeBenefitRecord(id=uuid.uuid4().hex, created_at=now, updated_at=now, **fields)
        async with self._lock:
            if record.status == BenefitStatus.ACTIVE and any(
                b.employee_id == record.employee_id
                and b.benefit_type_id == record.benefit_type_id
                and b.status == BenefitStatus.ACTIVE
                for b in self._benefits.values()
            ):
                raise ConflictError("Employee already has this benefit active")
            self._benefits[record.id] = record
        return record

    async def update(self, benefit_id: str, fields: Dict) -> Optional[EmployeeBenefitRecord]:
        async with self._lock:
            current = self._benefits.get(benefit_id)
            if current is None:
                return None
            updated = current.model_copy(update={**fields, "updated_at": datetime.now(timezone.utc)})
            self._benefits[benefit_id] = updated
        return updated

    async def delete(self, benefit_id: str) -> bool:
        async with self._lock:
            return self._benefits.pop(benefit_id, None) is not None
