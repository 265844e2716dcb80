"""Tests for the admin maintenance use cases: bonus recalculation, stale reset, legacy statuses."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from fieldops.application.use_cases.normalize_legacy_status import NormalizeLegacyStatusUseCase
from fieldops.application.use_cases.recalculate_bonuses import RecalculateBonusesUseCase
from fieldops.application.use_cases.reset_stale_assignments import ResetStaleAssignmentsUseCase
from fieldops.domain.entities.fees import TechnicianFee
from fieldops.domain.errors import PermissionDenied, ValidationError
from fieldops.domain.value_objects.enums import PerformStatus, TicketStatus, TicketType


def _recalc(world):
    return RecalculateBonusesUseCase(world.uow, world.tickets, world.ledger(), clock=world.clock)


def _reset(world):
    return ResetStaleAssignmentsUseCase(world.uow, world.tickets, world.assignments, world.config, clock=world.clock)


# ─── Recalculate bonuses ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_recalculate_applies_current_fees(world, admin):
    andi, bayu = world.add_technician("Andi"), world.add_technician("Bayu")
    on_time = world.add_ticket(status=TicketStatus.CLOSED, perform_status=PerformStatus.PERFORM, duration_minutes=90)
    late = world.add_ticket(status=TicketStatus.CLOSED, perform_status=PerformStatus.NOT_PERFORM)
    world.assign(on_time.id, andi.id, bayu.id)
    world.assign(late.id, andi.id)
    world.store.settings.update({"ticket_fee_home_maintenance": "40000", "transport_fee_home_maintenance": "10000"})
    world.store.technician_fees.append(
        TechnicianFee(id=1, technician_id=bayu.id, ticket_type=TicketType.HOME_MAINTENANCE,
                      ticket_fee=Decimal("45000"), transport_fee=Decimal("5000"))
    )

    summary = await _recalc(world).execute(admin)

    assert summary.tickets_updated == 2
    assert summary.performance_logs_written == 3
    assert world.ticket(on_time.id).bonus == Decimal("50000.00")
    assert world.ticket(late.id).bonus == Decimal("10000.00")
    by_key = {(p.ticket_id, p.technician_id): p for p in world.store.performance_logs}
    assert by_key[(on_time.id, bayu.id)].bonus == Decimal("50000.00")
    assert by_key[(on_time.id, bayu.id)].duration_minutes == 90
    assert by_key[(late.id, andi.id)].ticket_fee == Decimal("0.00")


@pytest.mark.asyncio
async def test_recalculate_is_idempotent(world, admin):
    andi = world.add_technician("Andi")
    ticket = world.add_ticket(status=TicketStatus.CLOSED, perform_status=PerformStatus.PERFORM)
    world.assign(ticket.id, andi.id)
    world.store.settings["ticket_fee_home_maintenance"] = "40000"

    await _recalc(world).execute(admin)
    first = [(p.technician_id, p.bonus) for p in world.store.performance_logs]
    await _recalc(world).execute(admin)
    second = [(p.technician_id, p.bonus) for p in world.store.performance_logs]

    assert first == second == [(andi.id, Decimal("40000.00"))]


@pytest.mark.asyncio
async def test_recalculate_admin_only(world, helpdesk):
    with pytest.raises(PermissionDenied):
        await _recalc(world).execute(helpdesk)


@pytest.mark.asyncio
async def test_recalculate_skips_ticket_reopened_after_snapshot(world, admin, helpdesk, monkeypatch):
    andi, citra = world.add_technician("Andi"), world.add_technician("Citra")
    ticket = world.add_ticket(status=TicketStatus.CLOSED, perform_status=PerformStatus.PERFORM, closed_at=world.clock.now)
    world.assign(ticket.id, andi.id)
    world.store.settings["ticket_fee_home_maintenance"] = "40000"
    snapshot = world.tickets.list_by_status

    async def reopen_after_snapshot(statuses):
        rows = await snapshot(statuses)
        await world.lifecycle().reopen(helpdesk, ticket.id, "still broken", [citra.id])
        return rows

    monkeypatch.setattr(world.tickets, "list_by_status", reopen_after_snapshot)

    summary = await _recalc(world).execute(admin)

    assert summary.tickets_updated == 0
    assert world.ticket(ticket.id).status == TicketStatus.ASSIGNED
    assert world.ticket(ticket.id).closed_at is None
    assert world.store.performance_logs == []


# ─── Reset stale assignments ────────────────────────────────────────


@pytest.mark.asyncio
async def test_reset_stale_assignments(world, admin):
    andi, bayu = world.add_technician("Andi"), world.add_technician("Bayu")
    old = world.clock.now - timedelta(hours=30)
    stale = world.add_ticket(status=TicketStatus.ASSIGNED)
    fresh = world.add_ticket(status=TicketStatus.ASSIGNED)
    working = world.add_ticket(status=TicketStatus.IN_PROGRESS)
    backbone = world.add_ticket(status=TicketStatus.ASSIGNED, type=TicketType.BACKBONE_MAINTENANCE)
    world.assign(stale.id, andi.id, at=old)
    world.assign(fresh.id, bayu.id)
    world.assign(working.id, bayu.id, at=old)
    world.assign(backbone.id, andi.id, at=old)

    count = await _reset(world).execute(admin)

    assert count == 1
    assert world.ticket(stale.id).status == TicketStatus.OPEN
    assert world.store.active_ids(stale.id) == []
    assert world.ticket(fresh.id).status == TicketStatus.ASSIGNED
    assert world.ticket(working.id).status == TicketStatus.IN_PROGRESS
    assert world.ticket(backbone.id).status == TicketStatus.ASSIGNED


@pytest.mark.asyncio
async def test_reset_stale_custom_age(world, admin):
    andi = world.add_technician("Andi")
    ticket = world.add_ticket(status=TicketStatus.WAITING_ASSIGNMENT)
    world.assign(ticket.id, andi.id, at=world.clock.now - timedelta(hours=3))

    assert await _reset(world).execute(admin, max_age_hours=4) == 0
    assert await _reset(world).execute(admin, max_age_hours=2) == 1
    with pytest.raises(ValidationError):
        await _reset(world).execute(admin, max_age_hours=0)


# ─── Legacy status normalization ────────────────────────────────────


@pytest.mark.asyncio
async def test_normalize_overdue_status(world):
    andi = world.add_technician("Andi")
    staffed = world.add_ticket(status=TicketStatus.OVERDUE)
    orphan = world.add_ticket(status=TicketStatus.OVERDUE)
    untouched = world.add_ticket(status=TicketStatus.CLOSED)
    world.assign(staffed.id, andi.id)

    moved = await NormalizeLegacyStatusUseCase(world.uow, world.tickets, world.assignments).execute()

    assert moved == {"assigned": 1, "open": 1}
    assert world.ticket(staffed.id).status == TicketStatus.ASSIGNED
    assert world.ticket(orphan.id).status == TicketStatus.OPEN
    assert world.ticket(untouched.id).status == TicketStatus.CLOSED


@pytest.mark.asyncio
async def test_normalize_dry_run_writes_nothing(world):
    ticket = world.add_ticket(status=TicketStatus.OVERDUE)
    moved = await NormalizeLegacyStatusUseCase(world.uow, world.tickets, world.assignments).execute(dry_run=True)
    assert moved == {"assigned": 0, "open": 1}
    assert world.ticket(ticket.id).status == TicketStatus.OVERDUE
