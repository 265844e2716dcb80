"""FeePolicy — SLA outcome and per-assignee pay on close."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from fieldops.domain.entities.fees import FeeSchedule, TechnicianFee
from fieldops.domain.entities.ticket import Ticket
from fieldops.domain.value_objects.enums import PerformStatus
from fieldops.domain.value_objects.money import ZERO


@dataclass(frozen=True)
class CloseOutcome:
    closed_at: datetime
    duration_minutes: int
    within_sla: bool

    @property
    def perform_status(self) -> PerformStatus:
        return PerformStatus.PERFORM if self.within_sla else PerformStatus.NOT_PERFORM


def evaluate_close(ticket: Ticket, closed_at: datetime) -> CloseOutcome:
    """A ticket is performed only when its deadline is strictly after the close time."""
    return CloseOutcome(
        closed_at=closed_at,
        duration_minutes=ticket.minutes_open(closed_at),
        within_sla=ticket.sla_deadline > closed_at,
    )


def resolve_schedule(global_schedule: FeeSchedule, override: TechnicianFee | None) -> FeeSchedule:
    """Technician-specific fees win over the global per-type settings."""
    if override is None:
        return global_schedule
    return override.schedule()


def payable(schedule: FeeSchedule, within_sla: bool) -> FeeSchedule:
    """The ticket fee is only earned within SLA; transport is always paid."""
    return FeeSchedule(
        ticket_fee=schedule.ticket_fee if within_sla else ZERO,
        transport_fee=schedule.transport_fee,
    )
