"""CreateTicketUseCase — register a new open ticket with its SLA deadline and fee snapshot."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from fieldops.application.engine_config import EngineConfig, utcnow
from fieldops.application.ports.area_lookup import AreaLookup
from fieldops.application.ports.location_resolver import LocationResolver
from fieldops.application.ports.settings_store import SettingsStore
from fieldops.application.ports.ticket_repo import TicketRepository
from fieldops.application.ports.unit_of_work import UnitOfWork
from fieldops.application.tunables import read_fee_schedule
from fieldops.domain.entities.ticket import Ticket
from fieldops.domain.errors import ValidationError
from fieldops.domain.policies.transitions import Action, Actor, ensure_role
from fieldops.domain.value_objects.enums import TicketPriority, TicketStatus, TicketType

logger = logging.getLogger(__name__)

_WORD = re.compile(r"\w\S*")


def title_case(name: str) -> str:
    return _WORD.sub(lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), name.strip())


def legacy_ticket_number(now: datetime) -> str:
    """``INC-`` plus the last 6 digits of the epoch milliseconds."""
    return f"INC-{str(int(now.timestamp() * 1000))[-6:]}"


@dataclass
class NewTicket:
    type: TicketType
    customer_name: str
    customer_phone: str
    location_ref: str
    title: str
    description: str = ""
    priority: TicketPriority = TicketPriority.MEDIUM
    customer_email: str | None = None
    area: str | None = None


class CreateTicketUseCase:
    def __init__(
        self,
        uow: UnitOfWork,
        ticket_repo: TicketRepository,
        settings: SettingsStore,
        resolver: LocationResolver,
        config: EngineConfig,
        area_lookup: AreaLookup | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._uow = uow
        self._tickets = ticket_repo
        self._settings = settings
        self._resolver = resolver
        self._areas = area_lookup
        self._config = config
        self._clock = clock

    async def execute(self, actor: Actor, data: NewTicket) -> Ticket:
        ensure_role(actor, Action.CREATE)
        for field_name in ("customer_name", "customer_phone", "location_ref", "title"):
            if not (getattr(data, field_name) or "").strip():
                raise ValidationError(f"{field_name} is required")

        location = await self._resolver.resolve(data.location_ref)
        area = data.area
        if area is None and location is not None and self._areas is not None:
            area = await self._areas.area_for(location)

        async with self._uow.transaction():
            now = self._clock()
            fees = await read_fee_schedule(self._settings, data.type)
            ticket = Ticket(
                id=None,
                ticket_number=legacy_ticket_number(now),
                ticket_code=await self._tickets.next_ticket_code(now.astimezone(self._config.tz).date()),
                type=data.type,
                priority=data.priority,
                status=TicketStatus.OPEN,
                customer_name=title_case(data.customer_name),
                customer_phone=data.customer_phone.strip(),
                customer_email=data.customer_email,
                location_ref=data.location_ref.strip(),
                location=location,
                area=area,
                title=data.title.strip(),
                description=data.description or "",
                created_at=now,
                sla_deadline=self._config.sla.deadline(data.type, now),
                ticket_fee=fees.ticket_fee,
                transport_fee=fees.transport_fee,
                bonus=fees.bonus,
            )
            ticket = await self._tickets.add(ticket)

        logger.info(
            "Ticket %s created: type=%s, priority=%s, sla=%s, located=%s",
            ticket.ticket_code, ticket.type.value, TicketPriority(ticket.priority).value,
            ticket.sla_deadline.isoformat(), location is not None,
        )
        return ticket
