"""Dispatch endpoints — next ticket for a technician, partner picker, performance."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from fieldops.application.ports.assignment_repo import AssignmentRepository
from fieldops.application.use_cases.auto_assign import DispatchEngine
from fieldops.application.use_cases.technician_reports import TechnicianReportsUseCase
from fieldops.domain.policies.transitions import Actor
from fieldops.infrastructure.api.dependencies import (
    get_actor,
    get_assignment_repo,
    get_dispatch_engine,
    get_technician_reports_uc,
)
from fieldops.infrastructure.api.schemas import (
    AutoAssignRequest,
    serialize_technician,
    serialize_ticket,
)

router = APIRouter(tags=["dispatch"])


@router.post("/dispatch/next")
async def auto_assign(
    req: AutoAssignRequest,
    actor: Actor = Depends(get_actor),
    engine: DispatchEngine = Depends(get_dispatch_engine),
    assignments: AssignmentRepository = Depends(get_assignment_repo),
):
    """Give the calling technician (and partner) the best open ticket."""
    result = await engine.auto_assign(actor, req.partner_id)
    return {
        "ticket": serialize_ticket(result.ticket, await assignments.active_for_ticket(result.ticket.id)),
        "dispatch": {
            "tier": result.tier,
            "rule": result.rule,
            "distance_km": result.distance_km,
            "reason": result.reason,
            "attempts": result.attempts,
        },
    }


@router.get("/technicians/free")
async def free_technicians(
    exclude_id: int | None = Query(default=None),
    reports: TechnicianReportsUseCase = Depends(get_technician_reports_uc),
):
    """Technicians with no active job, for the partner picker."""
    return [serialize_technician(t) for t in await reports.free_technicians(exclude_id)]


@router.get("/technicians/{technician_id}/performance")
async def technician_performance(
    technician_id: int,
    reports: TechnicianReportsUseCase = Depends(get_technician_reports_uc),
):
    summary = await reports.performance(technician_id)
    return {
        "technician_id": summary.technician_id,
        "total_completed": summary.total_completed,
        "sla_compliance_rate": summary.sla_compliance_rate,
        "avg_resolution_minutes": summary.avg_resolution_minutes,
        "total_overdue": summary.total_overdue,
        "total_ticket_fee": str(summary.total_ticket_fee),
        "total_transport_fee": str(summary.total_transport_fee),
        "total_bonus": str(summary.total_bonus),
    }
