"""
Cross-service reference checks.

Services do not share a database, so a write that points at an entity owned
by another service (a benefit for an employee, a payroll for a worker) asks
the owner whether the entity exists. The policy is asymmetric:

- the owner answers 404: the reference is confirmed absent and the write
  must fail (``ReferenceNotFoundError``);
- the owner cannot answer (timeout, connection error, open circuit, 5xx or
  any other unexpected status): log a warning and let the write proceed.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from shared.errors import ReferenceNotFoundError, UpstreamUnavailableError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.service_client import ServiceClient


class ReferenceStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    UNVERIFIED = "unverified"


@dataclass(frozen=True)
class ReferenceCheck:
    """Outcome of a single reference lookup."""

    entity: str
    reference_id: str
    status: ReferenceStatus
    detail: Optional[str] = None

    @property
    def confirmed(self) -> bool:
        return self.status is ReferenceStatus.FOUND


class ReferenceChecker:
    """Verify that an entity owned by another service exists."""

    def __init__(
        self,
        client: ServiceClient,
        entity: str,
        path_template: str,
        *,
        metrics: Optional[MetricsCollector] = None,
        not_found_status: int = 404,
    ) -> None:
        self.client = client
        self.entity = entity
        self.path_template = path_template
        self.metrics = metrics
        self.not_found_status = not_found_status
        self.logger = get_logger(f"{client.name}.reference_checker")

    async def check(self, reference_id: str) -> ReferenceCheck:
        """Look the reference up without raising for any outcome."""
        path = self.path_template.format(id=reference_id)

        try:
            response = await self.client.get(path)
        except UpstreamUnavailableError as exc:
            result = ReferenceCheck(self.entity, reference_id, ReferenceStatus.UNVERIFIED, exc.detail)
        else:
            if response.status_code == 404:
                result = ReferenceCheck(self.entity, reference_id, ReferenceStatus.NOT_FOUND)
            elif 200 <= response.status_code < 300:
                result = ReferenceCheck(self.entity, reference_id, ReferenceStatus.FOUND)
            else:
                result = ReferenceCheck(
                    self.entity,
                    reference_id,
                    ReferenceStatus.UNVERIFIED,
                    f"unexpected status {response.status_code}",
                )

        if self.metrics:
            self.metrics.increment_counter(
                "reference_checks_total", entity=self.entity, outcome=result.status.value
            )
        return result

    async def ensure_exists(self, reference_id: str) -> ReferenceCheck:
        """Fail only when the owner confirms the reference is absent."""
        result = await self.check(reference_id)

        if result.status is ReferenceStatus.NOT_FOUND:
            raise ReferenceNotFoundError(self.entity, reference_id, status_code=self.not_found_status)

        if result.status is ReferenceStatus.UNVERIFIED:
            self.logger.warning(
                "Could not validate reference, proceeding",
                entity=self.entity,
                reference_id=reference_id,
                detail=result.detail,
            )

        return result


def employee_reference_checker(client: ServiceClient,
                               metrics: Optional[MetricsCollector] = None) -> ReferenceChecker:
    """Checker for employees owned by the workers service."""
    return ReferenceChecker(client, "employee", "/api/workers/{id}", metrics=metrics)
