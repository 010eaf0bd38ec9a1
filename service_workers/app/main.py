"""
Workers service for the HR services platform.
"""

from typing import List, Optional

from fastapi import Response

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from service_workers.app.models import Worker, WorkerCreate, WorkerStatus, WorkerUpdate
from service_workers.app.repository import InMemoryWorkerRepository, WorkerRepository
from service_workers.app.service import WorkerService


class WorkersService(BaseService):
    """Workers service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None,
                 repository: Optional[WorkerRepository] = None):
        super().__init__("workers", 3001, config or get_config("workers", 3001))
        self.workers = WorkerService(repository or InMemoryWorkerRepository(), metrics=self.metrics)
        self._setup_worker_routes()
        self.app.state.workers_service = self

    def _setup_worker_routes(self):
        """Set up worker routes."""

        @self.app.get("/api/workers", response_model=List[Worker])
        async def list_workers(status: Optional[WorkerStatus] = None):
            return await self.workers.get_all(status)

        @self.app.post("/api/workers", response_model=Worker, status_code=201)
        async def create_worker(payload: WorkerCreate):
            return await self.workers.create(payload)

        @self.app.get("/api/workers/{worker_id}", response_model=Worker)
        async def get_worker(worker_id: str):
            return await self.workers.get_by_id(worker_id)

        @self.app.put("/api/workers/{worker_id}", response_model=Worker)
        async def update_worker(worker_id: str, payload: WorkerUpdate):
            return await self.workers.update(worker_id, payload)

        @self.app.delete("/api/workers/{worker_id}", status_code=204)
        async def delete_worker(worker_id: str):
            await self.workers.delete(worker_id)
            return Response(status_code=204)

        @self.app.post("/api/workers/{worker_id}/entry", response_model=Worker)
        async def register_entry(worker_id: str):
            return await self.workers.register_entry(worker_id)

        @self.app.post("/api/workers/{worker_id}/exit", response_model=Worker)
        async def register_exit(worker_id: str):
            return await self.workers.register_exit(worker_id)

        @self.app.post("/api/workers/{worker_id}/absence", response_model=Worker)
        async def register_absence(worker_id: str):
            return await self.workers.register_absence(worker_id)


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = WorkersService(config, **kwargs)
    return service.app


if __name__ == "__main__":
    service = WorkersService()
    service.run()
