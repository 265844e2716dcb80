"""NormalizeLegacyStatusUseCase — one-time rewrite of the retired 'overdue' status."""

from __future__ import annotations

import logging

from fieldops.application.ports.assignment_repo import AssignmentRepository
from fieldops.application.ports.ticket_repo import TicketRepository
from fieldops.application.ports.unit_of_work import UnitOfWork
from fieldops.domain.value_objects.enums import TicketStatus

logger = logging.getLogger(__name__)


class NormalizeLegacyStatusUseCase:
    def __init__(self, uow: UnitOfWork, ticket_repo: TicketRepository, assignment_repo: AssignmentRepository):
        self._uow = uow
        self._tickets = ticket_repo
        self._assignments = assignment_repo

    async def execute(self, dry_run: bool = False) -> dict[str, int]:
        """Rows with active assignees become assigned, the rest open.

        Returns the number of tickets moved to each status.
        """
        moved = {TicketStatus.ASSIGNED.value: 0, TicketStatus.OPEN.value: 0}
        async with self._uow.transaction():
            for legacy in await self._tickets.list_by_status([TicketStatus.OVERDUE]):
                ticket = await self._tickets.get_for_update(legacy.id)
                if ticket is None or ticket.status != TicketStatus.OVERDUE:
                    continue
                active = await self._assignments.active_for_ticket(ticket.id)
                target = TicketStatus.ASSIGNED if active else TicketStatus.OPEN
                moved[target.value] += 1
                if dry_run:
                    continue
                ticket.status = target
                await self._tickets.update(ticket)
                logger.info("Ticket %s: overdue → %s", ticket.id, target.value)
            if dry_run:
                logger.info("Dry run, nothing written: %s", moved)
        return moved
