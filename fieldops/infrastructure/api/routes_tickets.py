"""Ticket endpoints — create, read and every lifecycle transition."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from fieldops.application.ports.assignment_repo import AssignmentRepository
from fieldops.application.ports.ticket_repo import TicketRepository
from fieldops.application.use_cases.create_ticket import CreateTicketUseCase, NewTicket
from fieldops.application.use_cases.lifecycle import CloseReport, LifecycleEngine
from fieldops.domain.entities.ticket import Ticket
from fieldops.domain.errors import NotFound, ValidationError
from fieldops.domain.policies.transitions import Actor
from fieldops.domain.value_objects.enums import TicketStatus
from fieldops.infrastructure.api.dependencies import (
    get_actor,
    get_assignment_repo,
    get_create_ticket_uc,
    get_lifecycle_engine,
    get_ticket_repo,
)
from fieldops.infrastructure.api.schemas import (
    ChangeTypeRequest,
    CloseRequest,
    CreateTicketRequest,
    ManualAssignRequest,
    ReasonRequest,
    ReopenRejectedRequest,
    ReopenRequest,
    TeamRequest,
    serialize_ticket,
)

router = APIRouter(prefix="/tickets", tags=["tickets"])


async def _with_team(ticket: Ticket, assignments: AssignmentRepository) -> dict:
    return serialize_ticket(ticket, await assignments.active_for_ticket(ticket.id))


@router.post("", status_code=201)
async def create_ticket(
    req: CreateTicketRequest,
    actor: Actor = Depends(get_actor),
    uc: CreateTicketUseCase = Depends(get_create_ticket_uc),
):
    ticket = await uc.execute(actor, NewTicket(**req.model_dump()))
    return serialize_ticket(ticket, [])


@router.get("")
async def list_tickets(
    status: list[str] = Query(default=[]),
    tickets: TicketRepository = Depends(get_ticket_repo),
):
    """List tickets, optionally filtered by one or more statuses."""
    try:
        statuses = [TicketStatus(s) for s in status] if status else list(TicketStatus)
    except ValueError as e:
        raise ValidationError(str(e)) from None
    rows = await tickets.list_by_status(statuses)
    return {"total": len(rows), "tickets": [serialize_ticket(t) for t in rows]}


@router.get("/{ticket_id}")
async def get_ticket(
    ticket_id: int,
    tickets: TicketRepository = Depends(get_ticket_repo),
    assignments: AssignmentRepository = Depends(get_assignment_repo),
):
    ticket = await tickets.get_by_id(ticket_id)
    if ticket is None:
        raise NotFound("Ticket", ticket_id)
    return await _with_team(ticket, assignments)


@router.get("/{ticket_id}/assignments")
async def assignment_history(
    ticket_id: int,
    assignments: AssignmentRepository = Depends(get_assignment_repo),
):
    history = await assignments.history_for_ticket(ticket_id)
    return [
        {
            "technician_id": a.technician_id,
            "assignment_type": a.assignment_type.value,
            "assigned_at": a.assigned_at.isoformat(),
            "active": a.active,
        }
        for a in history
    ]


@router.post("/{ticket_id}/assign")
async def manual_assign(
    ticket_id: int,
    req: ManualAssignRequest,
    actor: Actor = Depends(get_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
    assignments: AssignmentRepository = Depends(get_assignment_repo),
):
    ticket = await engine.manual_assign(actor, ticket_id, req.technician_id)
    return await _with_team(ticket, assignments)


@router.post("/{ticket_id}/reassign")
async def reassign(
    ticket_id: int,
    req: TeamRequest,
    actor: Actor = Depends(get_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
    assignments: AssignmentRepository = Depends(get_assignment_repo),
):
    ticket = await engine.reassign(actor, ticket_id, req.technician_ids)
    return await _with_team(ticket, assignments)


@router.post("/{ticket_id}/unassign")
async def unassign(
    ticket_id: int,
    actor: Actor = Depends(get_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    return serialize_ticket(await engine.unassign(actor, ticket_id), [])


@router.post("/{ticket_id}/start")
async def start_work(
    ticket_id: int,
    actor: Actor = Depends(get_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    return serialize_ticket(await engine.start_work(actor, ticket_id))


@router.post("/{ticket_id}/no-response")
async def report_no_response(
    ticket_id: int,
    req: ReasonRequest,
    actor: Actor = Depends(get_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    return serialize_ticket(await engine.report_no_response(actor, ticket_id, req.reason))


@router.post("/{ticket_id}/reject")
async def confirm_reject(
    ticket_id: int,
    req: ReasonRequest,
    actor: Actor = Depends(get_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    return serialize_ticket(await engine.confirm_reject(actor, ticket_id, req.reason))


@router.post("/{ticket_id}/cancel-reject")
async def cancel_reject(
    ticket_id: int,
    actor: Actor = Depends(get_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    return serialize_ticket(await engine.cancel_reject(actor, ticket_id))


@router.post("/{ticket_id}/close-by-helpdesk")
async def close_by_helpdesk(
    ticket_id: int,
    req: ReasonRequest,
    actor: Actor = Depends(get_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    return serialize_ticket(await engine.close_by_helpdesk(actor, ticket_id, req.reason))


@router.post("/{ticket_id}/close")
async def close(
    ticket_id: int,
    req: CloseRequest,
    actor: Actor = Depends(get_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    report = CloseReport(
        action_description=req.action_description or "",
        proof_refs=req.proof_refs,
        note=req.note,
        speedtest_result=req.speedtest_result,
        speedtest_ref=req.speedtest_ref,
    )
    return serialize_ticket(await engine.close(actor, ticket_id, report))


@router.post("/{ticket_id}/reopen")
async def reopen(
    ticket_id: int,
    req: ReopenRequest,
    actor: Actor = Depends(get_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
    assignments: AssignmentRepository = Depends(get_assignment_repo),
):
    ticket = await engine.reopen(actor, ticket_id, req.reason, req.technician_ids)
    return await _with_team(ticket, assignments)


@router.post("/{ticket_id}/reopen-rejected")
async def reopen_rejected(
    ticket_id: int,
    req: ReopenRejectedRequest,
    actor: Actor = Depends(get_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
    assignments: AssignmentRepository = Depends(get_assignment_repo),
):
    ticket = await engine.reopen_rejected(actor, ticket_id, req.reason, req.mode)
    return {**await _with_team(ticket, assignments), "mode": req.mode.value}


@router.post("/{ticket_id}/type")
async def change_type(
    ticket_id: int,
    req: ChangeTypeRequest,
    actor: Actor = Depends(get_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
):
    return serialize_ticket(await engine.change_type(actor, ticket_id, req.type))
