"""Port interface for assignment persistence."""

from abc import ABC, abstractmethod

from fieldops.domain.entities.assignment import Assignment


class AssignmentRepository(ABC):
    @abstractmethod
    async def add(self, assignment: Assignment) -> Assignment:
        ...

    @abstractmethod
    async def active_for_ticket(self, ticket_id: int) -> list[Assignment]:
        """Active rows in insertion order; the first one is the lead technician."""
        ...

    @abstractmethod
    async def deactivate_all(self, ticket_id: int) -> int:
        """Mark every active row of the ticket inactive. Returns how many changed."""
        ...

    @abstractmethod
    async def history_for_ticket(self, ticket_id: int) -> list[Assignment]:
        ...
