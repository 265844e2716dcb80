"""Port interface for ticket persistence."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import date, datetime

from fieldops.domain.entities.ticket import Ticket
from fieldops.domain.value_objects.enums import TicketStatus, TicketType


class TicketRepository(ABC):
    @abstractmethod
    async def add(self, ticket: Ticket) -> Ticket:
        """Insert a new ticket and return it with its id set."""
        ...

    @abstractmethod
    async def get_by_id(self, ticket_id: int) -> Ticket | None:
        ...

    @abstractmethod
    async def get_for_update(self, ticket_id: int) -> Ticket | None:
        """Load a ticket and hold its row lock until the transaction ends.

        Concurrent writers block here and then see the committed status.
        """
        ...

    @abstractmethod
    async def claim_open(self, ticket_id: int) -> Ticket | None:
        """Lock the ticket only if it is still open and not locked by another claimer.

        Returns None when another dispatch already took it.
        """
        ...

    @abstractmethod
    async def update(self, ticket: Ticket) -> Ticket:
        ...

    @abstractmethod
    async def list_by_status(self, statuses: Iterable[TicketStatus]) -> list[Ticket]:
        ...

    @abstractmethod
    async def next_ticket_code(self, day: date) -> str:
        """Next same-day sequential code, ``YYMMDD`` followed by 4 digits."""
        ...

    @abstractmethod
    async def count_closed_by(
        self, technician_id: int, since: datetime, types: Iterable[TicketType]
    ) -> int:
        """Closed tickets of ``types`` where the technician is an active assignee."""
        ...

    @abstractmethod
    async def last_closed_by(self, technician_id: int, since: datetime) -> Ticket | None:
        """Most recently closed ticket of the technician since ``since``."""
        ...

    @abstractmethod
    async def active_job_for(self, technician_id: int) -> Ticket | None:
        """The assigned/in-progress ticket the technician is actively bound to, if any."""
        ...

    @abstractmethod
    async def list_stale_assigned(self, assigned_before: datetime) -> list[Ticket]:
        """Assigned or waiting home/installation tickets holding an active assignment older than the cutoff."""
        ...
