"""
Payroll business operations.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

from shared.errors import ConflictError, NotFoundError, ServiceException
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .calculator import PayrollCalculator
from .clients import WorkerDirectory
from .models import MonthlyRunResult, PayrollRecord
from .repository import DUPLICATE_PAYROLL, PayrollRepository


class PayrollService:
    """Process, list and settle payrolls."""

    def __init__(
        self,
        repository: PayrollRepository,
        calculator: PayrollCalculator,
        workers: WorkerDirectory,
        *,
        batch_concurrency: int = 5,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.repository = repository
        self.calculator = calculator
        self.workers = workers
        self.batch_concurrency = batch_concurrency
        self.metrics = metrics
        self.logger = get_logger("payroll.service")

    async def get_all(self) -> List[PayrollRecord]:
        return await self.repository.find_all()

    async def get_by_id(self, payroll_id: str) -> PayrollRecord:
        payroll = await self.repository.find_by_id(payroll_id)
        if payroll is None:
            raise NotFoundError("Payroll not found")
        return payroll

    async def get_by_month_year(self, month: int, year: int) -> List[PayrollRecord]:
        return await self.repository.find_by_month_year(month, year)

    async def process_payroll(self, employee_id: str, month: int, year: int,
                              overtime_hours: float = 0) -> PayrollRecord:
        """Compute and store the payroll of one employee for ``month``/``year``."""
        if await self.repository.find_by_employee_month_year(employee_id, month, year):
            raise ConflictError(DUPLICATE_PAYROLL)

        calculation = await self.calculator.calculate(employee_id, overtime_hours)
        payroll = await self.repository.create(calculation, month, year)

        self.logger.info(
            "Payroll processed",
            payroll_id=payroll.id,
            employee_id=employee_id,
            month=month,
            year=year,
        )
        if self.metrics:
            self.metrics.record_business_event("payroll_processed")
        return payroll

    async def process_monthly(self, month: int, year: int) -> MonthlyRunResult:
        """Recompute the payroll of every active employee for ``month``/``year``.

        Existing payrolls of the period are removed before any new one is
        written, so running the batch twice leaves one payroll per employee.
        """
        started = time.monotonic()
        employees = await self.workers.list_employees()
        active = [e for e in employees if e.get("status") == "active"]

        removed = await self.repository.delete_by_month_year(month, year)
        self.logger.info(
            "Monthly payroll started",
            month=month,
            year=year,
            employees=len(active),
            removed=removed,
        )

        semaphore = asyncio.Semaphore(self.batch_concurrency)

        async def process_one(employee: Dict[str, Any]) -> Optional[str]:
            async with semaphore:
                try:
                    await self.process_payroll(str(employee.get("id")), month, year)
                except ServiceException as exc:
                    reason = exc.message
                except Exception as exc:
                    self.logger.error("Unexpected payroll failure", employee_id=employee.get("id"),
                                      exc_info=True)
                    reason = str(exc) or "Unknown error"
                else:
                    return None

            message = f"Error processing payroll for {employee.get('name', employee.get('id'))}: {reason}"
            self.logger.error(message, employee_id=employee.get("id"), month=month, year=year)
            return message

        outcomes = await asyncio.gather(*(process_one(e) for e in active))
        errors = [outcome for outcome in outcomes if outcome]
        processed = len(outcomes) - len(errors)

        if self.metrics:
            self.metrics.record_business_event("monthly_payroll_processed")
            self.metrics.observe_histogram("payroll_batch_duration_seconds", time.monotonic() - started)
            self.metrics.increment_counter("payroll_batch_employees_total", processed, outcome="processed")
            self.metrics.increment_counter("payroll_batch_employees_total", len(errors), outcome="failed")
        self.logger.info("Monthly payroll finished", month=month, year=year,
                         processed=processed, failed=len(errors))
        return MonthlyRunResult(processed=processed, errors=errors)

    async def mark_as_paid(self, payroll_id: str) -> PayrollRecord:
        payroll = await self.repository.mark_as_paid(payroll_id)
        if payroll is None:
            raise NotFoundError("Payroll not found")
        if self.metrics:
            self.metrics.record_business_event("payroll_paid")
        return payroll
