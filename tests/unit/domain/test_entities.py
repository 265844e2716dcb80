"""Tests for domain entities."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from fieldops.domain.entities.fees import FeeSchedule
from fieldops.domain.entities.technician import Technician
from fieldops.domain.entities.ticket import Ticket
from fieldops.domain.value_objects.enums import (
    PerformStatus,
    TicketPriority,
    TicketStatus,
    TicketType,
    UserRole,
)

NOW = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)


def _ticket(**overrides):
    values = dict(
        id=1, ticket_number="INC-1", type=TicketType.HOME_MAINTENANCE, priority=TicketPriority.MEDIUM,
        status=TicketStatus.OPEN, customer_name="C", customer_phone="1", location_ref="",
        title="t", description="", created_at=NOW - timedelta(hours=2), sla_deadline=NOW + timedelta(hours=22),
    )
    values.update(overrides)
    return Ticket(**values)


def test_minutes_open():
    assert _ticket().minutes_open(NOW) == 120


def test_is_overdue_strict():
    t = _ticket(sla_deadline=NOW)
    assert not t.is_overdue(NOW)
    assert t.is_overdue(NOW + timedelta(seconds=1))


def test_rejection_notes_accumulate():
    t = _ticket(rejection_reason="Customer not home")
    t.append_rejection_note("Confirmed", "  called twice ")
    assert t.rejection_reason == "Customer not home\n[Confirmed] called twice"


def test_first_rejection_note_has_no_leading_newline():
    t = _ticket()
    t.append_rejection_note("Closed by helpdesk", "fixed remotely")
    assert t.rejection_reason == "[Closed by helpdesk] fixed remotely"


def test_reopen_notes_accumulate():
    t = _ticket()
    t.append_reopen_note("Reopened 2026-10-18 09:00", "still down")
    t.append_reopen_note("Reopened 2026-10-19 10:00", "again")
    assert t.reopen_reason.splitlines() == [
        "[Reopened 2026-10-18 09:00] still down",
        "[Reopened 2026-10-19 10:00] again",
    ]


def test_clear_close_artifacts():
    t = _ticket(
        status=TicketStatus.CLOSED, closed_at=NOW, duration_minutes=120,
        perform_status=PerformStatus.PERFORM, ticket_fee=Decimal("1.00"), bonus=Decimal("1.00"),
        action_description="replaced ONT", proof_refs=["a.jpg"], closed_note="ok",
    )
    t.clear_close_artifacts()
    assert t.closed_at is None
    assert t.perform_status is None
    assert t.bonus == Decimal("0.00")
    assert t.proof_refs == []
    assert t.action_description is None


def test_technician_capabilities():
    assert Technician(id=1, name="A").can_work_tickets()
    assert not Technician(id=1, name="A", is_active=False).can_work_tickets()
    assert not Technician(id=1, name="A", role=UserRole.HELPDESK).can_work_tickets()
    assert Technician(id=1, name="A", is_vendor_specialist=True).is_specialist()
    assert not Technician(id=1, name="A").is_specialist()


def test_fee_schedule_bonus():
    assert FeeSchedule.of("50000", "15000.5").bonus == Decimal("65000.50")
