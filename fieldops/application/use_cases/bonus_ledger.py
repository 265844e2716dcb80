"""BonusLedger — writes the fee snapshot and per-assignee performance logs of a closed ticket."""

from __future__ import annotations

import logging
from datetime import datetime

from fieldops.application.ports.assignment_repo import AssignmentRepository
from fieldops.application.ports.performance_log_repo import PerformanceLogRepository
from fieldops.application.ports.settings_store import SettingsStore
from fieldops.application.ports.technician_fee_repo import TechnicianFeeRepository
from fieldops.application.tunables import read_fee_schedule
from fieldops.domain.entities.performance_log import PerformanceLog
from fieldops.domain.entities.ticket import Ticket
from fieldops.domain.policies.fees import payable, resolve_schedule
from fieldops.domain.value_objects.enums import PerformStatus

logger = logging.getLogger(__name__)


class BonusLedger:
    """Reproducible from (ticket type, technician overrides, SLA outcome) alone.

    Every write first drops the ticket's existing logs, so running it twice
    for the same ticket leaves the same rows behind.
    """

    def __init__(
        self,
        assignment_repo: AssignmentRepository,
        performance_repo: PerformanceLogRepository,
        fee_repo: TechnicianFeeRepository,
        settings: SettingsStore,
    ):
        self._assignments = assignment_repo
        self._performance = performance_repo
        self._fees = fee_repo
        self._settings = settings

    async def settle(self, ticket: Ticket, within_sla: bool, at: datetime) -> list[PerformanceLog]:
        """Set the ticket-level snapshot and regenerate one log per active assignee."""
        global_schedule = await read_fee_schedule(self._settings, ticket.type)
        snapshot = payable(global_schedule, within_sla)
        ticket.ticket_fee = snapshot.ticket_fee
        ticket.transport_fee = snapshot.transport_fee
        ticket.bonus = snapshot.bonus

        await self._performance.delete_for_ticket(ticket.id)

        result = PerformStatus.PERFORM if within_sla else PerformStatus.NOT_PERFORM
        logs: list[PerformanceLog] = []
        for assignment in await self._assignments.active_for_ticket(ticket.id):
            override = await self._fees.get_for_type(assignment.technician_id, ticket.type)
            earned = payable(resolve_schedule(global_schedule, override), within_sla)
            logs.append(
                await self._performance.add(
                    PerformanceLog(
                        id=None,
                        technician_id=assignment.technician_id,
                        ticket_id=ticket.id,
                        result=result,
                        completed_within_sla=within_sla,
                        duration_minutes=ticket.duration_minutes or 0,
                        ticket_fee=earned.ticket_fee,
                        transport_fee=earned.transport_fee,
                        bonus=earned.bonus,
                        created_at=at,
                    )
                )
            )
        logger.debug("Ticket %s: %d performance log(s) written", ticket.id, len(logs))
        return logs

    async def revoke(self, ticket_id: int) -> int:
        removed = await self._performance.delete_for_ticket(ticket_id)
        if removed:
            logger.info("Ticket %s: removed %d performance log(s)", ticket_id, removed)
        return removed
