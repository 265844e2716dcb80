"""Tests for the dispatch ratio and eligibility tiers."""

from datetime import datetime, timedelta, timezone

import pytest

from fieldops.domain.entities.technician import Technician
from fieldops.domain.entities.ticket import Ticket
from fieldops.domain.policies.dispatch_ratio import (
    DispatchRatio,
    build_eligibility_tiers,
    preferred_type,
)
from fieldops.domain.value_objects.enums import TicketPriority, TicketStatus, TicketType

NOW = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)


def _ticket(tid, ticket_type, overdue=False):
    return Ticket(
        id=tid, ticket_number=f"INC-{tid}", type=ticket_type, priority=TicketPriority.MEDIUM,
        status=TicketStatus.OPEN, customer_name="C", customer_phone="1", location_ref="",
        title="t", description="", created_at=NOW - timedelta(hours=30),
        sla_deadline=NOW - timedelta(hours=1) if overdue else NOW + timedelta(hours=5),
    )


@pytest.mark.parametrize(
    "completed,expected",
    [
        (0, TicketType.HOME_MAINTENANCE),
        (3, TicketType.HOME_MAINTENANCE),
        (4, TicketType.INSTALLATION),
        (5, TicketType.INSTALLATION),
        (6, TicketType.HOME_MAINTENANCE),
        (10, TicketType.INSTALLATION),
    ],
)
def test_default_ratio_cycles(completed, expected):
    assert preferred_type(completed, DispatchRatio()) == expected


def test_custom_ratio():
    ratio = DispatchRatio(maintenance=1, installation=1)
    assert [preferred_type(n, ratio) for n in range(4)] == [
        TicketType.HOME_MAINTENANCE,
        TicketType.INSTALLATION,
        TicketType.HOME_MAINTENANCE,
        TicketType.INSTALLATION,
    ]


def test_backbone_specialist_only_sees_backbone():
    pool = [
        _ticket(1, TicketType.HOME_MAINTENANCE, overdue=True),
        _ticket(2, TicketType.BACKBONE_MAINTENANCE),
        _ticket(3, TicketType.INSTALLATION),
    ]
    tech = Technician(id=1, name="B", is_backbone_specialist=True)
    tiers = build_eligibility_tiers(pool, tech, 0, DispatchRatio(), NOW)
    assert [t.name for t in tiers] == ["backbone"]
    assert [t.id for t in tiers[0].tickets] == [2]


def test_backbone_specialist_with_no_backbone_work_gets_nothing():
    tech = Technician(id=1, name="B", is_backbone_specialist=True)
    tiers = build_eligibility_tiers([_ticket(1, TicketType.HOME_MAINTENANCE)], tech, 0, DispatchRatio(), NOW)
    assert tiers == []


def test_regular_technician_never_sees_backbone():
    pool = [_ticket(1, TicketType.BACKBONE_MAINTENANCE, overdue=True)]
    tiers = build_eligibility_tiers(pool, Technician(id=1, name="R"), 0, DispatchRatio(), NOW)
    assert tiers == []


def test_preferred_then_fallback_order():
    pool = [_ticket(1, TicketType.HOME_MAINTENANCE), _ticket(2, TicketType.INSTALLATION)]
    tech = Technician(id=1, name="R")
    tiers = build_eligibility_tiers(pool, tech, 4, DispatchRatio(), NOW)
    assert [t.name for t in tiers] == ["preferred_installation", "fallback_home_maintenance"]


def test_empty_preferred_pool_falls_back():
    pool = [_ticket(1, TicketType.INSTALLATION)]
    tiers = build_eligibility_tiers(pool, Technician(id=1, name="R"), 0, DispatchRatio(), NOW)
    assert [t.name for t in tiers] == ["fallback_installation"]


def test_overdue_tier_beats_ratio():
    pool = [_ticket(1, TicketType.HOME_MAINTENANCE), _ticket(2, TicketType.INSTALLATION, overdue=True)]
    tiers = build_eligibility_tiers(pool, Technician(id=1, name="R"), 0, DispatchRatio(), NOW)
    assert tiers[0].name == "overdue"
    assert [t.id for t in tiers[0].tickets] == [2]


def test_forced_home_maintenance_comes_first():
    pool = [_ticket(1, TicketType.HOME_MAINTENANCE), _ticket(2, TicketType.INSTALLATION, overdue=True)]
    tech = Technician(id=1, name="R", force_home_maintenance=True)
    tiers = build_eligibility_tiers(pool, tech, 4, DispatchRatio(), NOW)
    assert tiers[0].name == "forced_home_maintenance"
    assert [t.id for t in tiers[0].tickets] == [1]


def test_vendor_specialist_dispatched_like_regular():
    pool = [_ticket(1, TicketType.HOME_MAINTENANCE), _ticket(2, TicketType.BACKBONE_MAINTENANCE)]
    tech = Technician(id=1, name="V", is_vendor_specialist=True)
    tiers = build_eligibility_tiers(pool, tech, 0, DispatchRatio(), NOW)
    assert [t.name for t in tiers] == ["preferred_home_maintenance"]
