"""LifecycleEngine — every status-changing action on an existing ticket."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from fieldops.application.engine_config import EngineConfig, utcnow
from fieldops.application.ports.assignment_repo import AssignmentRepository
from fieldops.application.ports.settings_store import SettingsStore
from fieldops.application.ports.technician_directory import TechnicianDirectory
from fieldops.application.ports.ticket_repo import TicketRepository
from fieldops.application.ports.unit_of_work import UnitOfWork
from fieldops.application.tunables import read_fee_schedule
from fieldops.application.use_cases.bonus_ledger import BonusLedger
from fieldops.domain.entities.assignment import MAX_ACTIVE_ASSIGNEES, Assignment
from fieldops.domain.entities.technician import Technician
from fieldops.domain.entities.ticket import Ticket
from fieldops.domain.errors import (
    AlreadyActive,
    AssigneeLimitExceeded,
    NotFound,
    PermissionDenied,
    SpecialistMismatch,
    ValidationError,
)
from fieldops.domain.policies.fees import evaluate_close
from fieldops.domain.policies.transitions import Action, Actor, ensure_role, ensure_source
from fieldops.domain.value_objects.enums import (
    AssignmentType,
    PerformStatus,
    ReopenMode,
    TicketStatus,
    TicketType,
    UserRole,
)
from fieldops.domain.value_objects.money import ZERO

logger = logging.getLogger(__name__)

# Helpdesk may not hand these to a regular technician directly; they go through dispatch
_DISPATCHED_TYPES = frozenset({TicketType.HOME_MAINTENANCE, TicketType.INSTALLATION})


@dataclass
class CloseReport:
    """What the technician submits when finishing a job."""

    action_description: str
    proof_refs: list[str] = field(default_factory=list)
    note: str | None = None
    speedtest_result: str | None = None
    speedtest_ref: str | None = None


def _required_text(value: str | None, name: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{name} is required")
    return text


def _team(technician_ids: Sequence[int] | None) -> list[int]:
    """Validate a 1-2 element technician id list; the first id is the lead."""
    ids = list(technician_ids or [])
    if not 1 <= len(ids) <= MAX_ACTIVE_ASSIGNEES:
        raise ValidationError(f"Provide 1 to {MAX_ACTIVE_ASSIGNEES} technician ids")
    if len(set(ids)) != len(ids):
        raise ValidationError("Technician ids must be distinct")
    return ids


def _stamp(at: datetime) -> str:
    return at.strftime("%Y-%m-%d %H:%M")


class LifecycleEngine:
    """Validates and applies ticket transitions.

    Every operation runs in one transaction and loads the ticket with its row
    lock held, so the second of two racing writers sees the first one's
    committed status and fails its precondition.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        ticket_repo: TicketRepository,
        assignment_repo: AssignmentRepository,
        directory: TechnicianDirectory,
        settings: SettingsStore,
        ledger: BonusLedger,
        config: EngineConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._uow = uow
        self._tickets = ticket_repo
        self._assignments = assignment_repo
        self._directory = directory
        self._settings = settings
        self._ledger = ledger
        self._config = config
        self._clock = clock

    # ── Assignment ───────────────────────────────────────────────────

    async def manual_assign(self, actor: Actor, ticket_id: int, technician_id: int | None) -> Ticket:
        ensure_role(actor, Action.MANUAL_ASSIGN)
        if technician_id is None:
            raise ValidationError("Technician id is required for manual assignment")

        async with self._uow.transaction():
            ticket = await self._load(ticket_id)
            ensure_source(ticket, Action.MANUAL_ASSIGN)
            await self._directory.lock([technician_id])
            technician = (await self._require_workers([technician_id]))[0]

            active = await self._assignments.active_for_ticket(ticket.id)
            if any(a.technician_id == technician_id for a in active):
                logger.info("Ticket %s: technician %s already assigned, nothing to do", ticket.id, technician_id)
                return ticket
            if len(active) >= MAX_ACTIVE_ASSIGNEES:
                raise AssigneeLimitExceeded(ticket.id, MAX_ACTIVE_ASSIGNEES)

            initial = not active
            if (
                initial
                and actor.role == UserRole.HELPDESK
                and ticket.type in _DISPATCHED_TYPES
                and not technician.is_specialist()
            ):
                raise PermissionDenied(
                    "Helpdesk can only manually assign backbone or vendor specialists "
                    "to home maintenance and installation tickets"
                )
            if initial:
                self._check_lead(ticket, technician)
            await self._ensure_free([technician_id], ticket.id)

            await self._assignments.add(
                Assignment(
                    id=None,
                    ticket_id=ticket.id,
                    technician_id=technician_id,
                    assigned_at=self._clock(),
                    assignment_type=AssignmentType.MANUAL,
                )
            )
            before = ticket.status
            if ticket.status in (TicketStatus.OPEN, TicketStatus.WAITING_ASSIGNMENT):
                ticket.status = TicketStatus.ASSIGNED
            return await self._commit(ticket, before, Action.MANUAL_ASSIGN)

    async def reassign(self, actor: Actor, ticket_id: int, technician_ids: Sequence[int] | None) -> Ticket:
        """Replace the whole team.

        A ticket that was in progress goes back to assigned; the new team
        starts the job again.
        """
        ensure_role(actor, Action.REASSIGN)
        team = _team(technician_ids)

        async with self._uow.transaction():
            ticket = await self._load(ticket_id)
            ensure_source(ticket, Action.REASSIGN)
            await self._directory.lock(team)
            technicians = await self._require_workers(team)

            if actor.role == UserRole.HELPDESK:
                current = await self._assignments.active_for_ticket(ticket.id)
                if not current:
                    raise PermissionDenied("Helpdesk can only reassign tickets that already have a lead technician")
                if team[0] != current[0].technician_id:
                    raise PermissionDenied("Helpdesk can only change the partner; the lead technician is locked")
                if any(not t.is_specialist() for t in technicians[1:]):
                    raise PermissionDenied("Helpdesk can only add backbone or vendor specialists as partner")

            self._check_lead(ticket, technicians[0])
            await self._ensure_free(team, ticket.id)

            await self._replace_team(ticket.id, team)
            before = ticket.status
            if ticket.status in (
                TicketStatus.OPEN,
                TicketStatus.WAITING_ASSIGNMENT,
                TicketStatus.IN_PROGRESS,
                TicketStatus.OVERDUE,
            ):
                ticket.status = TicketStatus.ASSIGNED
            return await self._commit(ticket, before, Action.REASSIGN)

    async def unassign(self, actor: Actor, ticket_id: int) -> Ticket:
        ensure_role(actor, Action.UNASSIGN)
        async with self._uow.transaction():
            ticket = await self._load(ticket_id)
            ensure_source(ticket, Action.UNASSIGN)
            await self._assignments.deactivate_all(ticket.id)
            before = ticket.status
            ticket.status = TicketStatus.OPEN
            return await self._commit(ticket, before, Action.UNASSIGN)

    # ── Field work ───────────────────────────────────────────────────

    async def start_work(self, actor: Actor, ticket_id: int) -> Ticket:
        ensure_role(actor, Action.START_WORK)
        async with self._uow.transaction():
            ticket = await self._load(ticket_id)
            ensure_source(ticket, Action.START_WORK)
            await self._ensure_assignee(actor, ticket)
            before = ticket.status
            ticket.status = TicketStatus.IN_PROGRESS
            return await self._commit(ticket, before, Action.START_WORK)

    async def report_no_response(self, actor: Actor, ticket_id: int, reason: str | None) -> Ticket:
        ensure_role(actor, Action.REPORT_NO_RESPONSE)
        text = _required_text(reason, "Reason")
        async with self._uow.transaction():
            ticket = await self._load(ticket_id)
            ensure_source(ticket, Action.REPORT_NO_RESPONSE)
            await self._ensure_assignee(actor, ticket)
            before = ticket.status
            ticket.status = TicketStatus.PENDING_REJECTION
            ticket.rejection_reason = text
            return await self._commit(ticket, before, Action.REPORT_NO_RESPONSE)

    async def close(self, actor: Actor, ticket_id: int, report: CloseReport) -> Ticket:
        ensure_role(actor, Action.CLOSE)
        description = _required_text(report.action_description, "Action description")
        async with self._uow.transaction():
            ticket = await self._load(ticket_id)
            ensure_source(ticket, Action.CLOSE)
            await self._ensure_assignee(actor, ticket)

            before = ticket.status
            ticket.action_description = description
            ticket.proof_refs = list(report.proof_refs)
            ticket.closed_note = report.note
            ticket.speedtest_result = report.speedtest_result
            ticket.speedtest_ref = report.speedtest_ref
            await self._settle(ticket)
            return await self._commit(ticket, before, Action.CLOSE)

    # ── Rejection ────────────────────────────────────────────────────

    async def confirm_reject(self, actor: Actor, ticket_id: int, reason: str | None) -> Ticket:
        ensure_role(actor, Action.CONFIRM_REJECT)
        text = _required_text(reason, "Reason")
        async with self._uow.transaction():
            ticket = await self._load(ticket_id)
            ensure_source(ticket, Action.CONFIRM_REJECT)
            now = self._clock()
            before = ticket.status
            ticket.status = TicketStatus.REJECTED
            ticket.closed_at = now
            ticket.duration_minutes = ticket.minutes_open(now)
            ticket.perform_status = PerformStatus.NOT_PERFORM
            ticket.ticket_fee = ZERO
            ticket.transport_fee = ZERO
            ticket.bonus = ZERO
            ticket.append_rejection_note("Confirmed", text)
            return await self._commit(ticket, before, Action.CONFIRM_REJECT)

    async def cancel_reject(self, actor: Actor, ticket_id: int) -> Ticket:
        ensure_role(actor, Action.CANCEL_REJECT)
        async with self._uow.transaction():
            ticket = await self._load(ticket_id)
            ensure_source(ticket, Action.CANCEL_REJECT)
            team = [a.technician_id for a in await self._assignments.active_for_ticket(ticket.id)]
            await self._directory.lock(team)
            await self._ensure_free(team, ticket.id)
            before = ticket.status
            ticket.status = TicketStatus.ASSIGNED
            ticket.rejection_reason = None
            return await self._commit(ticket, before, Action.CANCEL_REJECT)

    async def close_by_helpdesk(self, actor: Actor, ticket_id: int, reason: str | None) -> Ticket:
        ensure_role(actor, Action.CLOSE_BY_HELPDESK)
        text = _required_text(reason, "Reason")
        async with self._uow.transaction():
            ticket = await self._load(ticket_id)
            ensure_source(ticket, Action.CLOSE_BY_HELPDESK)
            before = ticket.status
            ticket.append_rejection_note("Closed by helpdesk", text)
            await self._settle(ticket)
            return await self._commit(ticket, before, Action.CLOSE_BY_HELPDESK)

    # ── Reopen ───────────────────────────────────────────────────────

    async def reopen(
        self, actor: Actor, ticket_id: int, reason: str | None, technician_ids: Sequence[int] | None
    ) -> Ticket:
        """Closed → assigned with a new team; the old credit is removed and the SLA deadline kept."""
        ensure_role(actor, Action.REOPEN)
        text = _required_text(reason, "Reason for reopening")
        team = _team(technician_ids)

        async with self._uow.transaction():
            ticket = await self._load(ticket_id)
            ensure_source(ticket, Action.REOPEN)
            await self._directory.lock(team)
            technicians = await self._require_workers(team)
            self._check_lead(ticket, technicians[0])
            await self._ensure_free(team, ticket.id)

            await self._ledger.revoke(ticket.id)
            await self._replace_team(ticket.id, team)

            before = ticket.status
            ticket.status = TicketStatus.ASSIGNED
            ticket.clear_close_artifacts()
            ticket.append_reopen_note(f"Reopened {_stamp(self._clock())}", text)
            return await self._commit(ticket, before, Action.REOPEN)

    async def reopen_rejected(
        self, actor: Actor, ticket_id: int, reason: str | None, mode: ReopenMode | str = ReopenMode.CURRENT
    ) -> Ticket:
        """Rejected → assigned (keep the team) or → open (back to the dispatch pool)."""
        ensure_role(actor, Action.REOPEN_REJECTED)
        text = _required_text(reason, "Reason for reopening")
        try:
            mode = ReopenMode(mode)
        except ValueError:
            raise ValidationError("Invalid reopen mode, use 'current' or 'auto'") from None

        async with self._uow.transaction():
            ticket = await self._load(ticket_id)
            ensure_source(ticket, Action.REOPEN_REJECTED)
            before = ticket.status

            if mode == ReopenMode.AUTO:
                await self._assignments.deactivate_all(ticket.id)
                ticket.status = TicketStatus.OPEN
                label = "AUTO_OPEN"
            else:
                team = [a.technician_id for a in await self._assignments.active_for_ticket(ticket.id)]
                if not team:
                    raise ValidationError("Ticket has no current team, reopen it in 'auto' mode")
                await self._directory.lock(team)
                await self._ensure_free(team, ticket.id)
                ticket.status = TicketStatus.ASSIGNED
                label = "CURRENT_ASSIGNMENT"

            ticket.clear_close_artifacts()
            ticket.rejection_reason = None
            ticket.append_reopen_note(f"Reopened from rejected {_stamp(self._clock())} | {label}", text)
            return await self._commit(ticket, before, Action.REOPEN_REJECTED)

    # ── Type change ──────────────────────────────────────────────────

    async def change_type(self, actor: Actor, ticket_id: int, new_type: TicketType | str) -> Ticket:
        ensure_role(actor, Action.CHANGE_TYPE)
        try:
            new_type = TicketType(new_type)
        except ValueError:
            raise ValidationError(f"Unknown ticket type '{new_type}'") from None

        async with self._uow.transaction():
            ticket = await self._load(ticket_id)
            ensure_source(ticket, Action.CHANGE_TYPE)
            if ticket.type == new_type:
                return ticket

            old_type = ticket.type
            ticket.type = new_type
            active = await self._assignments.active_for_ticket(ticket.id)
            if active:
                lead = await self._directory.get_by_id(active[0].technician_id)
                if lead is not None:
                    self._check_lead(ticket, lead)

            fees = await read_fee_schedule(self._settings, new_type)
            ticket.sla_deadline = self._config.sla.deadline(new_type, ticket.created_at)
            ticket.ticket_fee = fees.ticket_fee
            ticket.transport_fee = fees.transport_fee
            ticket.bonus = fees.bonus
            ticket = await self._tickets.update(ticket)
            logger.info(
                "Ticket %s: type %s → %s, sla=%s",
                ticket.id, old_type.value, new_type.value, ticket.sla_deadline.isoformat(),
            )
            return ticket

    # ── Internals ────────────────────────────────────────────────────

    async def _load(self, ticket_id: int) -> Ticket:
        ticket = await self._tickets.get_for_update(ticket_id)
        if ticket is None:
            raise NotFound("Ticket", ticket_id)
        return ticket

    async def _commit(self, ticket: Ticket, before: TicketStatus, action: Action) -> Ticket:
        ticket = await self._tickets.update(ticket)
        logger.info(
            "Ticket %s: %s → %s (%s)",
            ticket.id, TicketStatus(before).value, TicketStatus(ticket.status).value, action.value,
        )
        return ticket

    async def _settle(self, ticket: Ticket) -> None:
        outcome = evaluate_close(ticket, self._clock())
        ticket.status = TicketStatus.CLOSED
        ticket.closed_at = outcome.closed_at
        ticket.duration_minutes = outcome.duration_minutes
        ticket.perform_status = outcome.perform_status
        await self._ledger.settle(ticket, outcome.within_sla, outcome.closed_at)

    async def _require_workers(self, technician_ids: Sequence[int]) -> list[Technician]:
        technicians = []
        for technician_id in technician_ids:
            technician = await self._directory.get_by_id(technician_id)
            if technician is None:
                raise NotFound("Technician", technician_id)
            if not technician.can_work_tickets():
                raise ValidationError(f"User {technician_id} is not an active technician")
            technicians.append(technician)
        return technicians

    @staticmethod
    def _check_lead(ticket: Ticket, lead: Technician) -> None:
        if ticket.type == TicketType.BACKBONE_MAINTENANCE and not lead.is_backbone_specialist:
            raise SpecialistMismatch(
                f"Ticket {ticket.id} is backbone maintenance; technician {lead.id} is not a backbone specialist"
            )

    async def _ensure_free(self, technician_ids: Sequence[int], ticket_id: int) -> None:
        for technician_id in technician_ids:
            job = await self._tickets.active_job_for(technician_id)
            if job is not None and job.id != ticket_id:
                raise AlreadyActive(technician_id)

    async def _ensure_assignee(self, actor: Actor, ticket: Ticket) -> None:
        active = await self._assignments.active_for_ticket(ticket.id)
        if not any(a.technician_id == actor.user_id for a in active):
            raise PermissionDenied(f"User {actor.user_id} is not assigned to ticket {ticket.id}")

    async def _replace_team(self, ticket_id: int, team: Sequence[int]) -> None:
        await self._assignments.deactivate_all(ticket_id)
        now = self._clock()
        for technician_id in team:
            await self._assignments.add(
                Assignment(
                    id=None,
                    ticket_id=ticket_id,
                    technician_id=technician_id,
                    assigned_at=now,
                    assignment_type=AssignmentType.MANUAL,
                )
            )
