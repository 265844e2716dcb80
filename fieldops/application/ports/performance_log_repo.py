"""Port interface for performance log persistence."""

from abc import ABC, abstractmethod

from fieldops.domain.entities.performance_log import PerformanceLog


class PerformanceLogRepository(ABC):
    @abstractmethod
    async def add(self, log: PerformanceLog) -> PerformanceLog:
        ...

    @abstractmethod
    async def delete_for_ticket(self, ticket_id: int) -> int:
        ...

    @abstractmethod
    async def list_for_ticket(self, ticket_id: int) -> list[PerformanceLog]:
        ...

    @abstractmethod
    async def list_for_technician(self, technician_id: int) -> list[PerformanceLog]:
        ...
