"""
Worker data models.
"""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from shared.models import CamelModel

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class ContractType(str, Enum):
    """Employment contract regime."""
    CLT = "CLT"
    PJ = "PJ"


class WorkerStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class WorkLog(CamelModel):
    """Single time-clock entry."""
    date: datetime
    entry_time: Optional[datetime] = None
    leave_time: Optional[datetime] = None
    absent: bool = False


class WorkerCreate(CamelModel):
    """Request model for worker creation."""
    name: str = Field(..., min_length=1, description="Full name")
    cpf: str = Field(..., min_length=1, description="Taxpayer id, unique per worker")
    birth_date: date = Field(..., description="Date of birth")
    admission_date: date = Field(..., description="Hiring date")
    salary: str = Field(..., min_length=1, description="Base salary as entered, e.g. '3.000,00'")
    phone: str = Field(..., min_length=1)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    address: str = Field(..., min_length=1)
    contract: ContractType
    role: str = Field(..., min_length=1, description="Job title")
    status: WorkerStatus = WorkerStatus.ACTIVE


class WorkerUpdate(CamelModel):
    """Partial update; omitted fields keep their value."""
    name: Optional[str] = Field(None, min_length=1)
    cpf: Optional[str] = Field(None, min_length=1)
    birth_date: Optional[date] = None
    admission_date: Optional[date] = None
    salary: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    address: Optional[str] = Field(None, min_length=1)
    contract: Optional[ContractType] = None
    role: Optional[str] = Field(None, min_length=1)
    status: Optional[WorkerStatus] = None


class Worker(WorkerCreate):
    """Stored worker."""
    id: str
    logs: List[WorkLog] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
