"""RecalculateBonusesUseCase — rebuild fee snapshots and performance logs of every closed ticket."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from fieldops.application.engine_config import utcnow
from fieldops.application.ports.ticket_repo import TicketRepository
from fieldops.application.ports.unit_of_work import UnitOfWork
from fieldops.application.use_cases.bonus_ledger import BonusLedger
from fieldops.domain.policies.transitions import Action, Actor, ensure_role
from fieldops.domain.value_objects.enums import PerformStatus, TicketStatus

logger = logging.getLogger(__name__)


@dataclass
class RecalculationSummary:
    tickets_updated: int
    performance_logs_written: int


class RecalculateBonusesUseCase:
    def __init__(
        self,
        uow: UnitOfWork,
        ticket_repo: TicketRepository,
        ledger: BonusLedger,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._uow = uow
        self._tickets = ticket_repo
        self._ledger = ledger
        self._clock = clock

    async def execute(self, actor: Actor) -> RecalculationSummary:
        """Apply current settings and overrides to all closed tickets.

        The stored perform status decides the SLA outcome, so running this
        twice in a row yields identical amounts.
        """
        ensure_role(actor, Action.RECALCULATE_BONUSES)
        tickets_updated = 0
        logs_written = 0
        async with self._uow.transaction():
            now = self._clock()
            closed_ids = [t.id for t in await self._tickets.list_by_status([TicketStatus.CLOSED])]
            for ticket_id in closed_ids:
                ticket = await self._tickets.get_for_update(ticket_id)
                # Reopened since the snapshot; its credit is gone
                if ticket is None or ticket.status != TicketStatus.CLOSED:
                    continue
                within_sla = ticket.perform_status == PerformStatus.PERFORM
                logs = await self._ledger.settle(ticket, within_sla, now)
                await self._tickets.update(ticket)
                tickets_updated += 1
                logs_written += len(logs)

        logger.info(
            "Bonus recalculation done: %d ticket(s), %d performance log(s)",
            tickets_updated, logs_written,
        )
        return RecalculationSummary(tickets_updated=tickets_updated, performance_logs_written=logs_written)
