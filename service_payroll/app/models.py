"""
Payroll data models.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from shared.models import CamelModel


class ContractType(str, Enum):
    CLT = "CLT"
    PJ = "PJ"


class PayrollStatus(str, Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    PAID = "paid"


class BenefitLine(CamelModel):
    """Active benefit as priced in a payroll."""
    name: str
    value: float
    has_discount: bool
    discount_value: float


class PayrollCalculation(CamelModel):
    """Computed payroll of one employee. Statutory fields are ``None`` for PJ."""
    employee_id: str
    employee_name: str
    contract: ContractType
    base_salary: float
    overtime_hours: float
    overtime_pay: float
    gross_salary: float
    benefits: List[BenefitLine] = Field(default_factory=list)
    inss: Optional[float] = None
    irrf: Optional[float] = None
    fgts: Optional[float] = None
    deductions: float
    total_salary: float


class PayrollRecord(PayrollCalculation):
    """Stored payroll, unique per employee, month and year."""
    id: str
    month: int
    year: int
    status: PayrollStatus = PayrollStatus.PROCESSED
    processed_at: datetime
    paid_at: Optional[datetime] = None


class ProcessPayrollRequest(CamelModel):
    employee_id: str = Field(..., min_length=1)
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    overtime_hours: float = Field(0, ge=0)


class ProcessMonthlyRequest(CamelModel):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)


class MonthlyRunResult(CamelModel):
    """Summary of a monthly batch."""
    message: str = ""
    processed: int
    errors: List[str] = Field(default_factory=list)


class MarkPaidResponse(CamelModel):
    message: str
    payroll: PayrollRecord
