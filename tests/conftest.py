"""Pytest configuration and shared fixtures.

Every port has an in-memory fake backed by one ``InMemoryStore``; reads and
writes go through ``deepcopy`` so use cases only see what they persisted.
"""

from __future__ import annotations

import asyncio
import copy
import random
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import pytest

from fieldops.application.engine_config import EngineConfig
from fieldops.application.ports.area_lookup import AreaLookup
from fieldops.application.ports.assignment_repo import AssignmentRepository
from fieldops.application.ports.location_resolver import LocationResolver
from fieldops.application.ports.performance_log_repo import PerformanceLogRepository
from fieldops.application.ports.settings_store import SettingsStore
from fieldops.application.ports.technician_directory import TechnicianDirectory
from fieldops.application.ports.technician_fee_repo import TechnicianFeeRepository
from fieldops.application.ports.ticket_repo import TicketRepository
from fieldops.application.ports.unit_of_work import UnitOfWork
from fieldops.application.use_cases.auto_assign import DispatchEngine
from fieldops.application.use_cases.bonus_ledger import BonusLedger
from fieldops.application.use_cases.create_ticket import CreateTicketUseCase
from fieldops.application.use_cases.lifecycle import LifecycleEngine
from fieldops.domain.entities.assignment import Assignment
from fieldops.domain.entities.technician import Technician
from fieldops.domain.entities.ticket import Ticket
from fieldops.domain.policies.transitions import Actor
from fieldops.domain.value_objects.enums import (
    ACTIVE_JOB_STATUSES,
    AssignmentType,
    TicketPriority,
    TicketStatus,
    TicketType,
    UserRole,
)
from fieldops.domain.value_objects.geo_point import GeoPoint

NOW = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)

# ─── In-memory store and fakes ──────────────────────────────────────


@dataclass
class InMemoryStore:
    tickets: dict[int, Ticket] = field(default_factory=dict)
    technicians: dict[int, Technician] = field(default_factory=dict)
    assignments: list[Assignment] = field(default_factory=list)
    performance_logs: list = field(default_factory=list)
    settings: dict[str, str | None] = field(default_factory=dict)
    technician_fees: list = field(default_factory=list)
    locked: list[list[int]] = field(default_factory=list)
    _ids: dict[str, int] = field(default_factory=dict)

    def next_id(self, kind: str) -> int:
        self._ids[kind] = self._ids.get(kind, 0) + 1
        return self._ids[kind]

    def active_ids(self, ticket_id: int) -> list[int]:
        return [a.technician_id for a in self.assignments if a.ticket_id == ticket_id and a.active]

    def holds(self, technician_id: int, ticket: Ticket) -> bool:
        return technician_id in self.active_ids(ticket.id)


class FakeUnitOfWork(UnitOfWork):
    def __init__(self):
        self.commits = 0
        self.rollbacks = 0

    @asynccontextmanager
    async def transaction(self):
        try:
            yield
        except BaseException:
            self.rollbacks += 1
            raise
        else:
            self.commits += 1


class FakeTicketRepo(TicketRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def add(self, ticket):
        ticket = copy.deepcopy(ticket)
        ticket.id = self._store.next_id("tickets")
        self._store.tickets[ticket.id] = ticket
        return copy.deepcopy(ticket)

    async def get_by_id(self, ticket_id):
        ticket = self._store.tickets.get(ticket_id)
        return copy.deepcopy(ticket) if ticket else None

    async def get_for_update(self, ticket_id):
        return await self.get_by_id(ticket_id)

    async def claim_open(self, ticket_id):
        # Check-and-set with no suspension point in between
        ticket = self._store.tickets.get(ticket_id)
        if ticket is None or ticket.status != TicketStatus.OPEN:
            return None
        return copy.deepcopy(ticket)

    async def update(self, ticket):
        self._store.tickets[ticket.id] = copy.deepcopy(ticket)
        return ticket

    async def list_by_status(self, statuses):
        # Yield so concurrent dispatches interleave between snapshot and claim
        wanted = set(statuses)
        rows = [t for t in self._store.tickets.values() if t.status in wanted]
        snapshot = [copy.deepcopy(t) for t in sorted(rows, key=lambda t: (t.created_at, t.id))]
        await asyncio.sleep(0)
        return snapshot

    async def next_ticket_code(self, day):
        prefix = day.strftime("%y%m%d")
        taken = [t.ticket_code for t in self._store.tickets.values() if (t.ticket_code or "").startswith(prefix)]
        seq = max((int(code[6:]) for code in taken), default=0) + 1
        return f"{prefix}{seq:04d}"

    def _closed_by(self, technician_id, since):
        return [
            t
            for t in self._store.tickets.values()
            if t.status == TicketStatus.CLOSED
            and t.closed_at is not None
            and t.closed_at >= since
            and self._store.holds(technician_id, t)
        ]

    async def count_closed_by(self, technician_id, since, types):
        wanted = set(types)
        return sum(1 for t in self._closed_by(technician_id, since) if t.type in wanted)

    async def last_closed_by(self, technician_id, since):
        closed = self._closed_by(technician_id, since)
        if not closed:
            return None
        return copy.deepcopy(max(closed, key=lambda t: t.closed_at))

    async def active_job_for(self, technician_id):
        for ticket in sorted(self._store.tickets.values(), key=lambda t: t.id):
            if ticket.status in ACTIVE_JOB_STATUSES and self._store.holds(technician_id, ticket):
                return copy.deepcopy(ticket)
        return None

    async def list_stale_assigned(self, assigned_before):
        stale = []
        for ticket in sorted(self._store.tickets.values(), key=lambda t: t.id):
            if ticket.status not in (TicketStatus.ASSIGNED, TicketStatus.WAITING_ASSIGNMENT):
                continue
            if ticket.type not in (TicketType.HOME_MAINTENANCE, TicketType.INSTALLATION):
                continue
            if any(
                a.ticket_id == ticket.id and a.active and a.assigned_at < assigned_before
                for a in self._store.assignments
            ):
                stale.append(copy.deepcopy(ticket))
        return stale


class FakeAssignmentRepo(AssignmentRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def add(self, assignment):
        assignment.id = self._store.next_id("assignments")
        self._store.assignments.append(copy.deepcopy(assignment))
        return assignment

    async def active_for_ticket(self, ticket_id):
        return [copy.deepcopy(a) for a in self._store.assignments if a.ticket_id == ticket_id and a.active]

    async def deactivate_all(self, ticket_id):
        count = 0
        for a in self._store.assignments:
            if a.ticket_id == ticket_id and a.active:
                a.active = False
                count += 1
        return count

    async def history_for_ticket(self, ticket_id):
        return [copy.deepcopy(a) for a in self._store.assignments if a.ticket_id == ticket_id]


class FakeDirectory(TechnicianDirectory):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def get_by_id(self, technician_id):
        technician = self._store.technicians.get(technician_id)
        return copy.deepcopy(technician) if technician else None

    async def lock(self, technician_ids):
        self._store.locked.append(sorted(set(technician_ids)))

    async def list_free(self, exclude_id=None):
        busy = {
            a.technician_id
            for a in self._store.assignments
            if a.active and self._store.tickets[a.ticket_id].status in ACTIVE_JOB_STATUSES
        }
        free = [
            t
            for t in self._store.technicians.values()
            if t.role == UserRole.TECHNICIAN and t.is_active and t.id not in busy and t.id != exclude_id
        ]
        return [copy.deepcopy(t) for t in sorted(free, key=lambda t: t.name)]


class FakeSettingsStore(SettingsStore):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def get(self, key):
        return self._store.settings.get(key)

    async def set(self, key, value):
        self._store.settings[key] = value

    async def get_all(self):
        return dict(self._store.settings)


class FakeFeeRepo(TechnicianFeeRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def get_for_type(self, technician_id, ticket_type):
        for fee in self._store.technician_fees:
            if fee.technician_id == technician_id and fee.ticket_type == ticket_type:
                return copy.deepcopy(fee)
        return None

    async def list_for_technician(self, technician_id):
        return [copy.deepcopy(f) for f in self._store.technician_fees if f.technician_id == technician_id]

    async def upsert(self, fee):
        for i, existing in enumerate(self._store.technician_fees):
            if existing.technician_id == fee.technician_id and existing.ticket_type == fee.ticket_type:
                fee.id = existing.id
                self._store.technician_fees[i] = copy.deepcopy(fee)
                return fee
        fee.id = self._store.next_id("technician_fees")
        self._store.technician_fees.append(copy.deepcopy(fee))
        return fee


class FakePerformanceRepo(PerformanceLogRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def add(self, log):
        log.id = self._store.next_id("performance_logs")
        self._store.performance_logs.append(copy.deepcopy(log))
        return log

    async def delete_for_ticket(self, ticket_id):
        before = len(self._store.performance_logs)
        self._store.performance_logs = [p for p in self._store.performance_logs if p.ticket_id != ticket_id]
        return before - len(self._store.performance_logs)

    async def list_for_ticket(self, ticket_id):
        return [copy.deepcopy(p) for p in self._store.performance_logs if p.ticket_id == ticket_id]

    async def list_for_technician(self, technician_id):
        return [copy.deepcopy(p) for p in self._store.performance_logs if p.technician_id == technician_id]


class FakeResolver(LocationResolver):
    def __init__(self, points: dict[str, GeoPoint] | None = None):
        self.points = dict(points or {})
        self.calls: list[str | None] = []

    async def resolve(self, location_ref):
        self.calls.append(location_ref)
        return self.points.get(location_ref)


class FakeAreaLookup(AreaLookup):
    def __init__(self, area: str | None = "Menteng"):
        self.area = area
        self.calls: list[GeoPoint] = []

    async def area_for(self, point):
        self.calls.append(point)
        return self.area


class FixedClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ─── World: fakes wired together with builders ──────────────────────


class World:
    def __init__(self):
        self.store = InMemoryStore()
        self.clock = FixedClock()
        self.config = EngineConfig()
        self.uow = FakeUnitOfWork()
        self.tickets = FakeTicketRepo(self.store)
        self.assignments = FakeAssignmentRepo(self.store)
        self.directory = FakeDirectory(self.store)
        self.settings = FakeSettingsStore(self.store)
        self.fees = FakeFeeRepo(self.store)
        self.performance = FakePerformanceRepo(self.store)
        self.resolver = FakeResolver()
        self.area_lookup = FakeAreaLookup()

    # Builders

    def add_technician(self, name: str = "", **overrides) -> Technician:
        technician_id = self.store.next_id("technicians")
        technician = Technician(id=technician_id, name=name or f"Tech {technician_id}", **overrides)
        self.store.technicians[technician_id] = technician
        return technician

    def add_ticket(self, **overrides) -> Ticket:
        ticket_id = self.store.next_id("tickets")
        ticket_type = overrides.pop("type", TicketType.HOME_MAINTENANCE)
        created_at = overrides.pop("created_at", self.clock.now - timedelta(hours=1))
        values = dict(
            id=ticket_id,
            ticket_number=f"INC-{ticket_id:06d}",
            ticket_code=f"261018{ticket_id:04d}",
            type=ticket_type,
            priority=TicketPriority.MEDIUM,
            status=TicketStatus.OPEN,
            customer_name="Budi Santoso",
            customer_phone="0812000000",
            location_ref=f"ref-{ticket_id}",
            title="No internet",
            description="",
            created_at=created_at,
            sla_deadline=self.config.sla.deadline(ticket_type, created_at),
        )
        values.update(overrides)
        ticket = Ticket(**values)
        self.store.tickets[ticket_id] = ticket
        return ticket

    def assign(self, ticket_id: int, *technician_ids: int, at: datetime | None = None) -> None:
        for technician_id in technician_ids:
            self.store.assignments.append(
                Assignment(
                    id=self.store.next_id("assignments"),
                    ticket_id=ticket_id,
                    technician_id=technician_id,
                    assigned_at=at or self.clock.now,
                    assignment_type=AssignmentType.MANUAL,
                )
            )

    def ticket(self, ticket_id: int) -> Ticket:
        return self.store.tickets[ticket_id]

    # Use cases

    def ledger(self) -> BonusLedger:
        return BonusLedger(self.assignments, self.performance, self.fees, self.settings)

    def dispatch_engine(self, rng: random.Random | None = None) -> DispatchEngine:
        return DispatchEngine(
            uow=self.uow,
            ticket_repo=self.tickets,
            assignment_repo=self.assignments,
            directory=self.directory,
            settings=self.settings,
            resolver=self.resolver,
            config=self.config,
            clock=self.clock,
            rng=rng or random.Random(7),
        )

    def lifecycle(self) -> LifecycleEngine:
        return LifecycleEngine(
            uow=self.uow,
            ticket_repo=self.tickets,
            assignment_repo=self.assignments,
            directory=self.directory,
            settings=self.settings,
            ledger=self.ledger(),
            config=self.config,
            clock=self.clock,
        )

    def create_ticket_uc(self) -> CreateTicketUseCase:
        return CreateTicketUseCase(
            uow=self.uow,
            ticket_repo=self.tickets,
            settings=self.settings,
            resolver=self.resolver,
            config=self.config,
            area_lookup=self.area_lookup,
            clock=self.clock,
        )


@pytest.fixture
def world():
    return World()


@pytest.fixture
def admin():
    return Actor(user_id=900, role=UserRole.ADMIN)


@pytest.fixture
def helpdesk():
    return Actor(user_id=901, role=UserRole.HELPDESK)


@pytest.fixture
def superadmin():
    return Actor(user_id=902, role=UserRole.SUPERADMIN)


def as_technician(technician: Technician) -> Actor:
    return Actor(user_id=technician.id, role=UserRole.TECHNICIAN)


@pytest.fixture
def tech_actor():
    return as_technician
