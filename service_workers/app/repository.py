"""
Worker store.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from shared.errors import ConflictError
from shared.logging import get_logger

from .models import Worker, WorkerCreate, WorkerStatus, WorkerUpdate, WorkLog


class WorkerRepository(Protocol):
    async def find_all(self, status: Optional[WorkerStatus] = None) -> List[Worker]: ...

    async def find_by_id(self, worker_id: str) -> Optional[Worker]: ...

    async def create(self, data: WorkerCreate) -> Worker: ...

    async def update(self, worker_id: str, changes: WorkerUpdate) -> Optional[Worker]: ...

    async def delete(self, worker_id: str) -> Optional[Worker]: ...

    async def add_log(self, worker_id: str, log: WorkLog) -> Optional[Worker]: ...

    async def close_last_log(self, worker_id: str, leave_time: datetime) -> Optional[Worker]: ...


class InMemoryWorkerRepository:
    """Process-local worker store with a unique CPF index."""

    def __init__(self):
        self._workers: Dict[str, Worker] = {}
        self._lock = asyncio.Lock()
        self.logger = get_logger("workers.repository")

    def _cpf_taken(self, cpf: str, exclude_id: Optional[str] = None) -> bool:
        return any(w.cpf == cpf and w.id != exclude_id for w in self._workers.values())

    async def find_all(self, status: Optional[WorkerStatus] = None) -> List[Worker]:
        workers = list(self._workers.values())
        if status is not None:
            workers = [w for w in workers if w.status == status]
        return workers

    async def find_by_id(self, worker_id: str) -> Optional[Worker]:
        return self._workers.get(worker_id)

    async def create(self, data: WorkerCreate) -> Worker:
        async with self._lock:
            if self._cpf_taken(data.cpf):
                raise ConflictError("Worker with this CPF already exists")
            now = datetime.now(timezone.utc)
            worker = Worker(
                id=uuid.uuid4().hex,
                created_at=now,
                updated_at=now,
                **data.model_dump(),
            )
            self._workers[worker.id] = worker
        self.logger.info("Worker created", worker_id=worker.id)
        return worker

    async def update(self, worker_id: str, changes: WorkerUpdate) -> Optional[Worker]:
        async with self._lock:
            current = self._workers.get(worker_id)
            if current is None:
                return None
            fields = changes.model_dump(exclude_unset=True)
            if "cpf" in fields and self._cpf_taken(fields["cpf"], exclude_id=worker_id):
                raise ConflictError("Worker with this CPF already exists")
            fields["updated_at"] = datetime.now(timezone.utc)
            updated = current.model_copy(update=fields)
            self._workers[worker_id] = updated
        return updated

    async def delete(self, worker_id: str) -> Optional[Worker]:
        async with self._lock:
            return self._workers.pop(worker_id, None)

    async def add_log(self, worker_id: str, log: WorkLog) -> Optional[Worker]:
        async with self._lock:
            current = self._workers.get(worker_id)
            if current is None:
                return None
            updated = current.model_copy(update={
                "logs": [*current.logs, log],
                "updated_at": datetime.now(timezone.utc),
            })
            self._workers[worker_id] = updated
        return updated

    async def close_last_log(self, worker_id: str, leave_time: datetime) -> Optional[Worker]:
        """Set ``leave_time`` on the most recent log, if there is one."""
        async with self._lock:
            current = self._workers.get(worker_id)
            if current is None or not current.logs:
                return current
            last = current.logs[-1].model_copy(update={"leave_time": leave_time})
            updated = current.model_copy(update={
                "logs": [*current.logs[:-1], last],
                "updated_at": datetime.now(timezone.utc),
            })
            self._workers[worker_id] = updated
        return updated
