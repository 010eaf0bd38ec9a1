"""
Worker business operations.
"""

from datetime import datetime, timezone
from typing import List, Optional

from shared.errors import NotFoundError, ValidationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .models import Worker, WorkerCreate, WorkerStatus, WorkerUpdate, WorkLog
from .repository import WorkerRepository


class WorkerService:
    """Worker CRUD plus time-clock registration."""

    def __init__(self, repository: WorkerRepository, metrics: Optional[MetricsCollector] = None):
        self.repository = repository
        self.metrics = metrics
        self.logger = get_logger("workers.service")

    async def get_all(self, status: Optional[WorkerStatus] = None) -> List[Worker]:
        return await self.repository.find_all(status)

    async def get_by_id(self, worker_id: str) -> Worker:
        worker = await self.repository.find_by_id(worker_id)
        if worker is None:
            raise NotFoundError("Worker not found")
        return worker

    async def create(self, data: WorkerCreate) -> Worker:
        worker = await self.repository.create(data)
        self._event("worker_created")
        return worker

    async def update(self, worker_id: str, changes: WorkerUpdate) -> Worker:
        worker = await self.repository.update(worker_id, changes)
        if worker is None:
            raise NotFoundError("Worker not found")
        return worker

    async def delete(self, worker_id: str) -> None:
        if await self.repository.delete(worker_id) is None:
            raise NotFoundError("Worker not found")
        self.logger.info("Worker deleted", worker_id=worker_id)

    async def register_entry(self, worker_id: str) -> Worker:
        now = datetime.now(timezone.utc)
        worker = await self.repository.add_log(worker_id, WorkLog(date=now, entry_time=now))
        if worker is None:
            raise NotFoundError("Worker not found")
        self._event("worker_entry")
        return worker

    async def register_exit(self, worker_id: str) -> Worker:
        worker = await self.repository.close_last_log(worker_id, datetime.now(timezone.utc))
        if worker is None:
            raise NotFoundError("Worker not found")
        if not worker.logs:
            raise ValidationError("No entry registered for this worker")
        self._event("worker_exit")
        return worker

    async def register_absence(self, worker_id: str) -> Worker:
        worker = await self.repository.add_log(
            worker_id, WorkLog(date=datetime.now(timezone.utc), absent=True)
        )
        if worker is None:
            raise NotFoundError("Worker not found")
        self._event("worker_absence")
        return worker

    def _event(self, name: str) -> None:
        if self.metrics:
            self.metrics.record_business_event(name)
