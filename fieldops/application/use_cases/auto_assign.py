"""DispatchEngine — a technician asks for the next ticket and gets bound to it with a partner."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from fieldops.application.engine_config import EngineConfig, utcnow
from fieldops.application.ports.assignment_repo import AssignmentRepository
from fieldops.application.ports.location_resolver import LocationResolver
from fieldops.application.ports.settings_store import SettingsStore
from fieldops.application.ports.technician_directory import TechnicianDirectory
from fieldops.application.ports.ticket_repo import TicketRepository
from fieldops.application.ports.unit_of_work import UnitOfWork
from fieldops.application.tunables import read_dispatch_ratio
from fieldops.domain.entities.assignment import Assignment
from fieldops.domain.entities.technician import Technician
from fieldops.domain.entities.ticket import Ticket
from fieldops.domain.errors import (
    AlreadyActive,
    NoTicketsAvailable,
    NotFound,
    PartnerBusy,
    PermissionDenied,
    ValidationError,
)
from fieldops.domain.policies.candidate_selection import (
    CandidateSelection,
    SelectionContext,
    select_candidate,
)
from fieldops.domain.policies.dispatch_ratio import build_eligibility_tiers
from fieldops.domain.policies.transitions import Action, Actor, ensure_role
from fieldops.domain.value_objects.enums import AssignmentType, TicketStatus, TicketType
from fieldops.domain.value_objects.geo_point import GeoPoint

logger = logging.getLogger(__name__)

_RATIO_TYPES = (TicketType.HOME_MAINTENANCE, TicketType.INSTALLATION)


@dataclass
class DispatchResult:
    """Summary of one successful auto-assignment."""

    ticket: Ticket
    technician_id: int
    partner_id: int
    tier: str
    rule: str
    distance_km: float | None
    reason: str
    attempts: int


class DispatchEngine:
    """Picks the best open ticket for the caller and binds caller + partner to it."""

    def __init__(
        self,
        uow: UnitOfWork,
        ticket_repo: TicketRepository,
        assignment_repo: AssignmentRepository,
        directory: TechnicianDirectory,
        settings: SettingsStore,
        resolver: LocationResolver,
        config: EngineConfig,
        clock: Callable[[], datetime] = utcnow,
        rng: random.Random | None = None,
    ):
        self._uow = uow
        self._tickets = ticket_repo
        self._assignments = assignment_repo
        self._directory = directory
        self._settings = settings
        self._resolver = resolver
        self._config = config
        self._clock = clock
        self._rng = rng

    async def auto_assign(self, actor: Actor, partner_id: int | None) -> DispatchResult:
        """Dispatch one ticket to ``actor`` and ``partner_id``.

        Steps:
        1. Resolve the proximity anchor and unlocated open tickets, no locks held
        2. Validate caller and partner, both locked for the transaction
        3. Build the eligibility tiers from specialty flags and today's history
        4. Select a candidate and claim it; a lost claim is excluded and selection re-runs
        5. Replace any stale assignment rows with two auto rows, status → assigned
        """
        ensure_role(actor, Action.AUTO_ASSIGN)
        technician_id = actor.user_id
        if technician_id is None:
            raise ValidationError("Acting technician id is required")
        if partner_id is None:
            raise ValidationError("A partner technician is required")
        if partner_id == technician_id:
            raise ValidationError("Partner must be a different technician")

        now = self._clock()
        day_start = self._config.start_of_day(now)
        # Network lookups happen here, before any row is locked
        anchor = await self._anchor_for(technician_id, day_start)
        located = await self._prefetch_locations() if anchor is not None else {}

        async with self._uow.transaction():
            await self._directory.lock([technician_id, partner_id])
            technician = await self._require_technician(technician_id)
            if not technician.can_work_tickets():
                raise PermissionDenied(f"User {technician_id} is not an active technician")
            partner = await self._require_technician(partner_id)
            if not partner.can_work_tickets():
                raise ValidationError(f"Partner {partner_id} is not an active technician")

            if await self._tickets.active_job_for(technician_id) is not None:
                raise AlreadyActive(technician_id)
            if await self._tickets.active_job_for(partner_id) is not None:
                raise PartnerBusy(partner_id)

            completed_today = await self._tickets.count_closed_by(technician_id, day_start, _RATIO_TYPES)
            ratio = await read_dispatch_ratio(self._settings, self._config.default_ratio)

            context = SelectionContext(
                now=now,
                anchor=anchor,
                radius_km=self._config.proximity_radius_km,
                rng=self._rng,
            )

            lost: set[int] = set()
            attempts = max(1, self._config.dispatch_max_attempts)
            for attempt in range(1, attempts + 1):
                open_tickets = [
                    t for t in await self._tickets.list_by_status([TicketStatus.OPEN]) if t.id not in lost
                ]
                if anchor is not None:
                    _apply_locations(open_tickets, located)

                tiers = build_eligibility_tiers(open_tickets, technician, completed_today, ratio, now)
                picked = self._pick(tiers, context)
                if picked is None:
                    break
                tier_name, selection = picked

                claimed = await self._tickets.claim_open(selection.ticket.id)
                if claimed is None:
                    # Row held or taken by another dispatch; it may still read as open
                    lost.add(selection.ticket.id)
                    logger.warning(
                        "Dispatch for technician %s lost ticket %s to a concurrent claim (attempt %d/%d)",
                        technician_id, selection.ticket.id, attempt, attempts,
                    )
                    continue

                ticket = await self._bind(claimed, technician_id, partner_id, now)
                logger.info(
                    "Ticket %s auto-assigned to %s+%s: tier=%s, rule=%s (%s)",
                    ticket.id, technician_id, partner_id, tier_name, selection.rule, selection.reason,
                )
                return DispatchResult(
                    ticket=ticket,
                    technician_id=technician_id,
                    partner_id=partner_id,
                    tier=tier_name,
                    rule=selection.rule,
                    distance_km=selection.distance_km,
                    reason=selection.reason,
                    attempts=attempt,
                )

        if lost:
            raise NoTicketsAvailable("Every candidate was claimed concurrently, poll again")
        raise NoTicketsAvailable()

    async def _require_technician(self, technician_id: int) -> Technician:
        technician = await self._directory.get_by_id(technician_id)
        if technician is None:
            raise NotFound("Technician", technician_id)
        return technician

    async def _anchor_for(self, technician_id: int, day_start: datetime) -> GeoPoint | None:
        last = await self._tickets.last_closed_by(technician_id, day_start)
        if last is None:
            return None
        if last.location is not None:
            return last.location
        return await self._resolver.resolve(last.location_ref)

    async def _prefetch_locations(self) -> dict[str, GeoPoint | None]:
        """Resolve the references of open tickets that have no stored coordinates."""
        located: dict[str, GeoPoint | None] = {}
        for ticket in await self._tickets.list_by_status([TicketStatus.OPEN]):
            if ticket.location is None and ticket.location_ref and ticket.location_ref not in located:
                located[ticket.location_ref] = await self._resolver.resolve(ticket.location_ref)
        return located

    @staticmethod
    def _pick(tiers, context: SelectionContext) -> tuple[str, CandidateSelection] | None:
        for tier in tiers:
            selection = select_candidate(tier.tickets, context)
            if selection is not None:
                return tier.name, selection
        return None

    async def _bind(self, ticket: Ticket, technician_id: int, partner_id: int, now: datetime) -> Ticket:
        stale = await self._assignments.deactivate_all(ticket.id)
        if stale:
            logger.warning("Ticket %s: deactivated %d stale assignment row(s) before dispatch", ticket.id, stale)
        for user_id in (technician_id, partner_id):
            await self._assignments.add(
                Assignment(
                    id=None,
                    ticket_id=ticket.id,
                    technician_id=user_id,
                    assigned_at=now,
                    assignment_type=AssignmentType.AUTO,
                )
            )
        ticket.status = TicketStatus.ASSIGNED
        return await self._tickets.update(ticket)


def _apply_locations(tickets: list[Ticket], located: dict[str, GeoPoint | None]) -> None:
    # Tickets opened after the prefetch stay unlocated and lose on proximity
    for ticket in tickets:
        if ticket.location is None and ticket.location_ref:
            ticket.location = located.get(ticket.location_ref)
