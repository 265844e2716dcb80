"""Tests for the HTTP surface: identity headers and error mapping."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fieldops.domain.errors import (
    AlreadyActive,
    AssigneeLimitExceeded,
    FieldOpsError,
    InvalidStateTransition,
    NoTicketsAvailable,
    NotFound,
    PartnerBusy,
    PermissionDenied,
    SpecialistMismatch,
    ValidationError,
)
from fieldops.domain.value_objects.enums import TicketStatus
from fieldops.infrastructure.api import dependencies as deps
from fieldops.infrastructure.api.errors import status_for
from fieldops.main import app


@pytest.fixture
def client(world):
    app.dependency_overrides = {
        deps.get_ticket_repo: lambda: world.tickets,
        deps.get_assignment_repo: lambda: world.assignments,
        deps.get_lifecycle_engine: lambda: world.lifecycle(),
        deps.get_dispatch_engine: lambda: world.dispatch_engine(),
        deps.get_create_ticket_uc: lambda: world.create_ticket_uc(),
    }
    yield TestClient(app)
    app.dependency_overrides = {}


def _as(role, user_id=None):
    headers = {"X-User-Role": role}
    if user_id is not None:
        headers["X-User-Id"] = str(user_id)
    return headers


@pytest.mark.parametrize(
    "exc,status",
    [
        (NotFound("Ticket", 1), 404),
        (NoTicketsAvailable(), 404),
        (ValidationError("bad"), 400),
        (PermissionDenied("no"), 403),
        (InvalidStateTransition(1, "open", "close"), 409),
        (AlreadyActive(1), 409),
        (PartnerBusy(2), 409),
        (AssigneeLimitExceeded(1, 2), 409),
        (SpecialistMismatch("x"), 409),
        (FieldOpsError("unmapped"), 500),
    ],
)
def test_status_mapping(exc, status):
    assert status_for(exc) == status


def test_unknown_ticket_is_404(client, world):
    andi = world.add_technician("Andi")
    response = client.post("/api/tickets/999/start", headers=_as("technician", andi.id))
    assert response.status_code == 404
    assert response.json() == {"error": "NotFound", "detail": "Ticket 999 not found"}


def test_illegal_transition_is_409(client, world):
    andi = world.add_technician("Andi")
    ticket = world.add_ticket(status=TicketStatus.OPEN)
    world.assign(ticket.id, andi.id)

    response = client.post(f"/api/tickets/{ticket.id}/start", headers=_as("technician", andi.id))

    assert response.status_code == 409
    assert response.json()["error"] == "InvalidStateTransition"
    assert world.ticket(ticket.id).status == TicketStatus.OPEN


def test_unknown_role_is_403(client, world):
    ticket = world.add_ticket()
    response = client.post(f"/api/tickets/{ticket.id}/unassign", headers=_as("janitor"))
    assert response.status_code == 403


def test_helpdesk_cannot_unassign(client, world):
    ticket = world.add_ticket(status=TicketStatus.ASSIGNED)
    response = client.post(f"/api/tickets/{ticket.id}/unassign", headers=_as("helpdesk", 5))
    assert response.status_code == 403
    assert response.json()["error"] == "PermissionDenied"


def test_create_and_read_ticket(client, world):
    body = {
        "type": "home_maintenance",
        "customer_name": "rina wati",
        "customer_phone": "0813",
        "location_ref": "Jl. Kenari 3",
        "title": "Slow connection",
    }
    created = client.post("/api/tickets", json=body, headers=_as("helpdesk", 5))
    assert created.status_code == 201
    data = created.json()
    assert data["status"] == "open"
    assert data["customer_name"] == "Rina Wati"
    assert data["assignees"] == []

    fetched = client.get(f"/api/tickets/{data['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["ticket_code"] == data["ticket_code"]


def test_create_with_blank_title_is_400(client):
    body = {
        "type": "installation",
        "customer_name": "Rina",
        "customer_phone": "0813",
        "location_ref": "Jl. Kenari 3",
        "title": " ",
    }
    response = client.post("/api/tickets", json=body, headers=_as("admin", 1))
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


def test_list_rejects_unknown_status(client):
    response = client.get("/api/tickets", params={"status": "lost"})
    assert response.status_code == 400


def test_dispatch_with_nothing_open_is_404(client, world):
    andi, bayu = world.add_technician("Andi"), world.add_technician("Bayu")
    response = client.post("/api/dispatch/next", json={"partner_id": bayu.id}, headers=_as("technician", andi.id))
    assert response.status_code == 404
    assert response.json()["error"] == "NoTicketsAvailable"


def test_dispatch_busy_partner_is_409(client, world):
    andi, bayu = world.add_technician("Andi"), world.add_technician("Bayu")
    busy = world.add_ticket(status=TicketStatus.IN_PROGRESS)
    world.assign(busy.id, bayu.id)
    world.add_ticket()

    response = client.post("/api/dispatch/next", json={"partner_id": bayu.id}, headers=_as("technician", andi.id))
    assert response.status_code == 409
    assert response.json()["error"] == "PartnerBusy"


def test_dispatch_success_shows_team(client, world):
    andi, bayu = world.add_technician("Andi"), world.add_technician("Bayu")
    ticket = world.add_ticket()

    response = client.post("/api/dispatch/next", json={"partner_id": bayu.id}, headers=_as("technician", andi.id))

    assert response.status_code == 200
    data = response.json()
    assert data["ticket"]["id"] == ticket.id
    assert data["ticket"]["status"] == "assigned"
    assert [a["technician_id"] for a in data["ticket"]["assignees"]] == [andi.id, bayu.id]
    assert data["dispatch"]["rule"] == "oldest"
