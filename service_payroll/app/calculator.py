"""
Payroll calculation.

The money math is pure: given the employee record, the employee's benefits
and the overtime hours it always produces the same figures. Amounts are
computed with ``Decimal`` and rounded half-up to cents; the public helpers
return ``float`` for JSON.

Statutory tables are the 2024 INSS and IRRF tables.
"""

import asyncio
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple, Union

from shared.errors import ValidationError
from shared.logging import get_logger

from .models import BenefitLine, ContractType, PayrollCalculation

Number = Union[int, float, Decimal, str]

CENT = Decimal("0.01")
MONTHLY_HOURS = Decimal("220")
CLT_OVERTIME_FACTOR = Decimal("1.5")
PJ_OVERTIME_FACTOR = Decimal("1")
FGTS_RATE = Decimal("0.08")

# (bracket ceiling, marginal rate)
INSS_BRACKETS: Tuple[Tuple[Decimal, Decimal], ...] = (
    (Decimal("1412.00"), Decimal("0.075")),
    (Decimal("2666.68"), Decimal("0.09")),
    (Decimal("4000.03"), Decimal("0.12")),
    (Decimal("7786.02"), Decimal("0.14")),
)

# (bracket ceiling, rate, deduction); ``None`` is the open top bracket.
IRRF_BRACKETS = (
    (Decimal("2259.20"), Decimal("0"), Decimal("0")),
    (Decimal("2826.65"), Decimal("0.075"), Decimal("169.44")),
    (Decimal("3751.05"), Decimal("0.15"), Decimal("381.44")),
    (Decimal("4664.68"), Decimal("0.225"), Decimal("662.77")),
    (None, Decimal("0.275"), Decimal("896.00")),
)

logger = get_logger("payroll.calculator")


def _dec(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def round2(value: Number) -> Decimal:
    return _dec(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_salary(text: Union[str, int, float]) -> Decimal:
    """Parse a salary as typed by a person.

    ``"3.000,00"``, ``"R$ 3000,00"`` and ``"3000.00"`` all give 3000. A comma
    is the decimal separator when present and dots are then thousands
    separators.
    """
    if isinstance(text, (int, float)):
        return _dec(text)

    cleaned = re.sub(r"[^\d,.]", "", text or "")
    if "," in cleaned:
        cleaned = cleaned.replace(".", "").replace(",", ".")
    elif cleaned.count(".") > 1:
        cleaned = cleaned.replace(".", "")

    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Invalid salary: {text!r}") from None
    if value < 0:
        raise ValueError(f"Invalid salary: {text!r}")
    return value


def _overtime(base_salary: Decimal, hours: Decimal, contract: ContractType) -> Decimal:
    factor = CLT_OVERTIME_FACTOR if contract == ContractType.CLT else PJ_OVERTIME_FACTOR
    return round2(base_salary / MONTHLY_HOURS * hours * factor)


def _inss(gross: Decimal) -> Decimal:
    contribution = Decimal("0")
    floor = Decimal("0")
    for ceiling, rate in INSS_BRACKETS:
        if gross <= floor:
            break
        contribution += (min(gross, ceiling) - floor) * rate
        floor = ceiling
    return round2(contribution)


def _irrf(gross: Decimal, inss: Decimal) -> Decimal:
    base = gross - inss
    for ceiling, rate, deduction in IRRF_BRACKETS:
        if ceiling is None or base <= ceiling:
            break
    if not rate:
        return Decimal("0.00")
    return round2(base * rate - deduction)


def _fgts(gross: Decimal) -> Decimal:
    return round2(gross * FGTS_RATE)


def calculate_overtime(base_salary: Number, overtime_hours: Number, contract: Union[ContractType, str]) -> float:
    """Overtime pay over a 220 hour month, +50% for CLT."""
    return float(_overtime(_dec(base_salary), _dec(overtime_hours), ContractType(contract)))


def calculate_inss(gross_salary: Number) -> float:
    """INSS applied marginally per bracket; nothing is due above the last ceiling."""
    return float(_inss(_dec(gross_salary)))


def calculate_irrf(gross_salary: Number, inss: Number) -> float:
    """IRRF on ``gross - inss``; the brackets are continuous so it never goes negative."""
    return float(_irrf(_dec(gross_salary), _dec(inss)))


def calculate_fgts(gross_salary: Number) -> float:
    return float(_fgts(_dec(gross_salary)))


def _benefit_discount(value: Decimal, has_discount: bool, percentage: Any) -> Decimal:
    if not has_discount or not percentage:
        return Decimal("0.00")
    return round2(value * _dec(percentage) / 100)


def calculate_benefit_discount(value: Number, has_discount: bool, discount_percentage: Any = None) -> float:
    """Share of a benefit paid by the employee."""
    return float(_benefit_discount(_dec(value), has_discount, discount_percentage))


def active_benefit_lines(benefits: Iterable[Mapping[str, Any]]) -> List[BenefitLine]:
    """Priced lines for the active benefits of an employee."""
    lines = []
    for benefit in benefits:
        if benefit.get("status") != "active":
            continue
        benefit_type = benefit.get("benefitType") or {}
        value = _dec(benefit.get("value") or 0)
        has_discount = bool(benefit_type.get("hasDiscount"))
        lines.append(BenefitLine(
            name=benefit_type.get("name", ""),
            value=float(value),
            has_discount=has_discount,
            discount_value=float(
                _benefit_discount(value, has_discount, benefit_type.get("discountPercentage"))
            ),
        ))
    return lines


def compute_payroll(employee: Mapping[str, Any], benefits: Sequence[Mapping[str, Any]],
                    overtime_hours: Number = 0) -> PayrollCalculation:
    """Payroll for one employee from the worker record and its benefits."""
    contract = ContractType(employee["contract"])
    base_salary = parse_salary(employee["salary"])
    hours = _dec(overtime_hours)

    overtime_pay = _overtime(base_salary, hours, contract)
    gross = base_salary + overtime_pay

    lines = active_benefit_lines(benefits)
    benefit_discounts = sum((_dec(line.discount_value) for line in lines), Decimal("0"))

    statutory: Dict[str, float] = {}
    deductions = benefit_discounts
    if contract == ContractType.CLT:
        inss = _inss(gross)
        irrf = _irrf(gross, inss)
        deductions += inss + irrf
        statutory = {"inss": float(inss), "irrf": float(irrf), "fgts": float(_fgts(gross))}

    deductions = round2(deductions)
    return PayrollCalculation(
        employee_id=str(employee["id"]),
        employee_name=employee.get("name", ""),
        contract=contract,
        base_salary=float(round2(base_salary)),
        overtime_hours=float(hours),
        overtime_pay=float(overtime_pay),
        gross_salary=float(round2(gross)),
        benefits=lines,
        deductions=float(deductions),
        total_salary=float(round2(gross - deductions)),
        **statutory,
    )


class PayrollCalculator:
    """Fetch an employee and its benefits, then compute the payroll."""

    def __init__(self, workers, benefits):
        self.workers = workers
        self.benefits = benefits

    async def calculate(self, employee_id: str, overtime_hours: Number = 0) -> PayrollCalculation:
        employee, benefits = await asyncio.gather(
            self.workers.get_employee(employee_id),
            self.benefits.benefits_for(employee_id),
        )

        try:
            calculation = compute_payroll(employee, benefits, overtime_hours)
        except (KeyError, ValueError) as exc:
            logger.error("Employee record cannot be used for payroll",
                         employee_id=employee_id, error=str(exc))
            raise ValidationError("Employee record is incomplete or has an invalid salary") from exc

        logger.info(
            "Payroll calculated",
            employee_id=employee_id,
            contract=calculation.contract.value,
            gross_salary=calculation.gross_salary,
            total_salary=calculation.total_salary,
        )
        return calculation
