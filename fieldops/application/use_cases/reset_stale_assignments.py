"""ResetStaleAssignmentsUseCase — return long-untouched dispatched tickets to the open pool."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from fieldops.application.engine_config import EngineConfig, utcnow
from fieldops.application.ports.assignment_repo import AssignmentRepository
from fieldops.application.ports.ticket_repo import TicketRepository
from fieldops.application.ports.unit_of_work import UnitOfWork
from fieldops.domain.errors import ValidationError
from fieldops.domain.policies.transitions import Action, Actor, ensure_role
from fieldops.domain.value_objects.enums import TicketStatus

logger = logging.getLogger(__name__)


class ResetStaleAssignmentsUseCase:
    def __init__(
        self,
        uow: UnitOfWork,
        ticket_repo: TicketRepository,
        assignment_repo: AssignmentRepository,
        config: EngineConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._uow = uow
        self._tickets = ticket_repo
        self._assignments = assignment_repo
        self._config = config
        self._clock = clock

    async def execute(self, actor: Actor, max_age_hours: int | None = None) -> int:
        """Unassign every stale ticket and set it back to open. Returns how many were reset."""
        ensure_role(actor, Action.RESET_STALE)
        hours = self._config.stale_assignment_hours if max_age_hours is None else max_age_hours
        if hours <= 0:
            raise ValidationError("max_age_hours must be positive")

        count = 0
        async with self._uow.transaction():
            cutoff = self._clock() - timedelta(hours=hours)
            for stale in await self._tickets.list_stale_assigned(cutoff):
                ticket = await self._tickets.get_for_update(stale.id)
                if ticket is None or ticket.status not in (
                    TicketStatus.ASSIGNED,
                    TicketStatus.WAITING_ASSIGNMENT,
                ):
                    continue
                await self._assignments.deactivate_all(ticket.id)
                ticket.status = TicketStatus.OPEN
                await self._tickets.update(ticket)
                count += 1

        logger.info("Stale assignment reset: %d ticket(s) older than %dh returned to open", count, hours)
        return count
