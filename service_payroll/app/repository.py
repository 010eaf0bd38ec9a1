"""
Payroll stores.

A payroll is unique per (employee, month, year). Both stores enforce that at
write time, so of two concurrent writers for the same key the second gets a
``ConflictError`` instead of overwriting the first.
"""

import asyncio
import json
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Protocol, Tuple

import asyncpg

from shared.errors import ConflictError, InternalError
from shared.logging import get_logger

from .models import PayrollCalculation, PayrollRecord, PayrollStatus

DUPLICATE_PAYROLL = "A payroll already exists for this employee in this month/year"


class PayrollRepository(Protocol):
    async def find_all(self) -> List[PayrollRecord]: ...

    async def find_by_id(self, payroll_id: str) -> Optional[PayrollRecord]: ...

    async def find_by_month_year(self, month: int, year: int) -> List[PayrollRecord]: ...

    async def find_by_employee_month_year(self, employee_id: str, month: int,
                                          year: int) -> Optional[PayrollRecord]: ...

    async def create(self, calculation: PayrollCalculation, month: int, year: int) -> PayrollRecord: ...

    async def delete_by_month_year(self, month: int, year: int) -> int: ...

    async def mark_as_paid(self, payroll_id: str) -> Optional[PayrollRecord]: ...


def _numeric(value: Optional[float]) -> Optional[Decimal]:
    return None if value is None else Decimal(str(value))


def _new_record(calculation: PayrollCalculation, month: int, year: int) -> PayrollRecord:
    return PayrollRecord(
        id=uuid.uuid4().hex,
        month=month,
        year=year,
        status=PayrollStatus.PROCESSED,
        processed_at=datetime.now(timezone.utc),
        **calculation.model_dump(),
    )


class InMemoryPayrollRepository:
    """Process-local payroll store with a unique (employee, month, year) index."""

    def __init__(self):
        self._records: Dict[str, PayrollRecord] = {}
        self._by_key: Dict[Tuple[str, int, int], str] = {}
        self._lock = asyncio.Lock()

    async def find_all(self) -> List[PayrollRecord]:
        return sorted(self._records.values(), key=lambda r: (-r.year, -r.month, r.employee_name))

    async def find_by_id(self, payroll_id: str) -> Optional[PayrollRecord]:
        return self._records.get(payroll_id)

    async def find_by_month_year(self, month: int, year: int) -> List[PayrollRecord]:
        records = [r for r in self._records.values() if r.month == month and r.year == year]
        return sorted(records, key=lambda r: r.employee_name)

    async def find_by_employee_month_year(self, employee_id: str, month: int,
                                          year: int) -> Optional[PayrollRecord]:
        payroll_id = self._by_key.get((employee_id, month, year))
        return self._records.get(payroll_id) if payroll_id else None

    async def create(self, calculation: PayrollCalculation, month: int, year: int) -> PayrollRecord:
        key = (calculation.employee_id, month, year)
        async with self._lock:
            if key in self._by_key:
                raise ConflictError(DUPLICATE_PAYROLL)
            record = _new_record(calculation, month, year)
            self._records[record.id] = record
            self._by_key[key] = record.id
        return record

    async def delete_by_month_year(self, month: int, year: int) -> int:
        async with self._lock:
            doomed = [r for r in self._records.values() if r.month == month and r.year == year]
            for record in doomed:
                del self._records[record.id]
                del self._by_key[(record.employee_id, record.month, record.year)]
        return len(doomed)

    async def mark_as_paid(self, payroll_id: str) -> Optional[PayrollRecord]:
        async with self._lock:
            current = self._records.get(payroll_id)
            if current is None:
                return None
            updated = current.model_copy(update={
                "status": PayrollStatus.PAID,
                "paid_at": datetime.now(timezone.utc),
            })
            self._records[payroll_id] = updated
        return updated


class PostgresPayrollRepository:
    """PostgreSQL payroll store."""

    def __init__(self, dsn: str):
        self.dsn = dsn
        self.logger = get_logger("payroll.repository.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Open the pool and create the table."""
        try:
            self.pool = await asyncpg.create_pool(self.dsn, min_size=2, max_size=10, command_timeout=30)
            await self._create_tables()
        except (OSError, asyncpg.PostgresError) as e:
            self.logger.error("Failed to start PostgreSQL payroll store", error=str(e))
            raise InternalError("Payroll store unavailable") from e
        self.logger.info("PostgreSQL payroll store started")

    async def stop(self):
        if self.pool:
            await self.pool.close()
            self.logger.info("PostgreSQL payroll store stopped")

    async def _create_tables(self):
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS payrolls (
                    id VARCHAR(64) PRIMARY KEY,
                    employee_id VARCHAR(255) NOT NULL,
                    employee_name VARCHAR(255) NOT NULL,
                    contract VARCHAR(8) NOT NULL,
                    month SMALLINT NOT NULL CHECK (month BETWEEN 1 AND 12),
                    year SMALLINT NOT NULL CHECK (year BETWEEN 2000 AND 2100),
                    base_salary NUMERIC(12, 2) NOT NULL,
                    overtime_hours NUMERIC(8, 2) NOT NULL DEFAULT 0,
                    overtime_pay NUMERIC(12, 2) NOT NULL DEFAULT 0,
                    gross_salary NUMERIC(12, 2) NOT NULL,
                    benefits JSONB NOT NULL DEFAULT '[]',
                    inss NUMERIC(12, 2),
                    irrf NUMERIC(12, 2),
                    fgts NUMERIC(12, 2),
                    deductions NUMERIC(12, 2) NOT NULL,
                    total_salary NUMERIC(12, 2) NOT NULL,
                    status VARCHAR(16) NOT NULL,
                    processed_at TIMESTAMP WITH TIME ZONE NOT NULL,
                    paid_at TIMESTAMP WITH TIME ZONE,
                    UNIQUE (employee_id, month, year)
                );
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_payrolls_period ON payrolls(year, month);
            """)

    async def find_all(self) -> List[PayrollRecord]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT * FROM payrolls ORDER BY year DESC, month DESC, employee_name ASC"
            )
        return [self._row_to_record(row) for row in rows]

    async def find_by_id(self, payroll_id: str) -> Optional[PayrollRecord]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM payrolls WHERE id = $1", payroll_id)
        return self._row_to_record(row) if row else None

    async def find_by_month_year(self, month: int, year: int) -> List[PayrollRecord]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT * FROM payrolls WHERE month = $1 AND year = $2 ORDER BY employee_name ASC",
                month, year,
            )
        return [self._row_to_record(row) for row in rows]

    async def find_by_employee_month_year(self, employee_id: str, month: int,
                                          year: int) -> Optional[PayrollRecord]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM payrolls WHERE employee_id = $1 AND month = $2 AND year = $3",
                employee_id, month, year,
            )
        return self._row_to_record(row) if row else None

    async def create(self, calculation: PayrollCalculation, month: int, year: int) -> PayrollRecord:
        record = _new_record(calculation, month, year)
        try:
            async with self.pool.acquire() as conn:
                await conn.execute("""
                    INSERT INTO payrolls (
                        id, employee_id, employee_name, contract, month, year,
                        base_salary, overtime_hours, overtime_pay, gross_salary, benefits,
                        inss, irrf, fgts, deductions, total_salary, status, processed_at, paid_at
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11::jsonb,
                              $12, $13, $14, $15, $16, $17, $18, $19)
                """,
                    record.id, record.employee_id, record.employee_name, record.contract.value,
                    record.month, record.year, _numeric(record.base_salary), _numeric(record.overtime_hours),
                    _numeric(record.overtime_pay), _numeric(record.gross_salary),
                    json.dumps([line.to_wire() for line in record.benefits]),
                    _numeric(record.inss), _numeric(record.irrf), _numeric(record.fgts),
                    _numeric(record.deductions), _numeric(record.total_salary),
                    record.status.value, record.processed_at, record.paid_at,
                )
        except asyncpg.UniqueViolationError as e:
            raise ConflictError(DUPLICATE_PAYROLL) from e
        return record

    async def delete_by_month_year(self, month: int, year: int) -> int:
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM payrolls WHERE month = $1 AND year = $2", month, year
            )
        # asyncpg returns the command tag, e.g. "DELETE 3"
        return int(result.split()[-1])

    async def mark_as_paid(self, payroll_id: str) -> Optional[PayrollRecord]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("""
                UPDATE payrolls SET status = $2, paid_at = $3
                WHERE id = $1
                RETURNING *
            """, payroll_id, PayrollStatus.PAID.value, datetime.now(timezone.utc))
        return self._row_to_record(row) if row else None

    def _row_to_record(self, row) -> PayrollRecord:
        data = dict(row)
        benefits = data.pop("benefits") or []
        if isinstance(benefits, str):
            benefits = json.loads(benefits)
        for field in ("base_salary", "overtime_hours", "overtime_pay", "gross_salary",
                      "inss", "irrf", "fgts", "deductions", "total_salary"):
            if data[field] is not None:
                data[field] = float(data[field])
        return PayrollRecord(benefits=benefits, **data)
