"""Read-only technician views: performance summary and free technicians."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from fieldops.application.ports.performance_log_repo import PerformanceLogRepository
from fieldops.application.ports.technician_directory import TechnicianDirectory
from fieldops.domain.entities.technician import Technician
from fieldops.domain.value_objects.money import ZERO, money_sum


@dataclass
class PerformanceSummary:
    technician_id: int
    total_completed: int
    sla_compliance_rate: int
    avg_resolution_minutes: int
    total_overdue: int
    total_ticket_fee: Decimal = ZERO
    total_transport_fee: Decimal = ZERO
    total_bonus: Decimal = ZERO


class TechnicianReportsUseCase:
    def __init__(self, performance_repo: PerformanceLogRepository, directory: TechnicianDirectory):
        self._performance = performance_repo
        self._directory = directory

    async def performance(self, technician_id: int) -> PerformanceSummary:
        logs = await self._performance.list_for_technician(technician_id)
        total = len(logs)
        within = sum(1 for log in logs if log.completed_within_sla)
        return PerformanceSummary(
            technician_id=technician_id,
            total_completed=total,
            # No completed work counts as fully compliant
            sla_compliance_rate=round(within / total * 100) if total else 100,
            avg_resolution_minutes=round(sum(log.duration_minutes for log in logs) / total) if total else 0,
            total_overdue=total - within,
            total_ticket_fee=money_sum(*(log.ticket_fee for log in logs)),
            total_transport_fee=money_sum(*(log.transport_fee for log in logs)),
            total_bonus=money_sum(*(log.bonus for log in logs)),
        )

    async def free_technicians(self, exclude_id: int | None = None) -> list[Technician]:
        return await self._directory.list_free(exclude_id)
