"""
Benefit data models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from shared.models import CamelModel


class BenefitStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class BenefitTypeCreate(CamelModel):
    """Request model for benefit type creation."""
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    has_discount: bool = Field(..., description="Whether the employee pays part of the benefit")
    discount_percentage: Optional[float] = Field(None, ge=0, le=100)
    default_value: float = Field(..., ge=0)
    status: BenefitStatus = BenefitStatus.ACTIVE


class BenefitTypeUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    has_discount: Optional[bool] = None
    discount_percentage: Optional[float] = Field(None, ge=0, le=100)
    default_value: Optional[float] = Field(None, ge=0)
    status: Optional[BenefitStatus] = None


class BenefitType(BenefitTypeCreate):
    id: str
    created_at: datetime
    updated_at: datetime


class EmployeeBenefitCreate(CamelModel):
    """Request model for attaching a benefit to an employee."""
    employee_id: str = Field(..., min_length=1)
    benefit_type_id: str = Field(..., min_length=1)
    value: Optional[float] = Field(None, ge=0, description="Defaults to the type's default value")
    status: BenefitStatus = BenefitStatus.ACTIVE
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class EmployeeBenefitUpdate(CamelModel):
    value: Optional[float] = Field(None, ge=0)
    status: Optional[BenefitStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class EmployeeBenefitRecord(CamelModel):
    """Stored employee benefit."""
    id: str
    employee_id: str
    benefit_type_id: str
    value: float
    status: BenefitStatus
    start_date: datetime
    end_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class EmployeeBenefit(EmployeeBenefitRecord):
    """Employee benefit as returned to clients, with its type embedded."""
    benefit_type: Optional[BenefitType] = None
