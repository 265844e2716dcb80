"""Request / response schemas and domain → JSON serializers."""

from __future__ import annotations

from pydantic import BaseModel, Field

from fieldops.domain.entities.assignment import Assignment
from fieldops.domain.entities.technician import Technician
from fieldops.domain.entities.ticket import Ticket
from fieldops.domain.value_objects.enums import (
    ReopenMode,
    TicketPriority,
    TicketStatus,
    TicketType,
)

# ── Request schemas ─────────────────────────────────────────────────


class CreateTicketRequest(BaseModel):
    type: TicketType
    priority: TicketPriority = TicketPriority.MEDIUM
    customer_name: str
    customer_phone: str
    customer_email: str | None = None
    location_ref: str
    title: str
    description: str = ""
    area: str | None = None


class AutoAssignRequest(BaseModel):
    partner_id: int | None = None


class ManualAssignRequest(BaseModel):
    technician_id: int | None = None


class TeamRequest(BaseModel):
    technician_ids: list[int] = Field(default_factory=list)


class ReasonRequest(BaseModel):
    reason: str | None = None


class ReopenRequest(BaseModel):
    reason: str | None = None
    technician_ids: list[int] = Field(default_factory=list)


class ReopenRejectedRequest(BaseModel):
    reason: str | None = None
    mode: ReopenMode = ReopenMode.CURRENT


class CloseRequest(BaseModel):
    action_description: str | None = None
    proof_refs: list[str] = Field(default_factory=list)
    note: str | None = None
    speedtest_result: str | None = None
    speedtest_ref: str | None = None


class ChangeTypeRequest(BaseModel):
    type: str


class SettingWriteRequest(BaseModel):
    value: str | None = None


class TechnicianFeeRequest(BaseModel):
    ticket_type: str
    ticket_fee: str = "0"
    transport_fee: str = "0"


class ResetStaleRequest(BaseModel):
    max_age_hours: int | None = None


# ── Serializers ─────────────────────────────────────────────────────


def serialize_ticket(t: Ticket, assignments: list[Assignment] | None = None) -> dict:
    """Convert a Ticket (with its active assignments, if loaded) to an API response dict."""
    data = {
        "id": t.id,
        "ticket_number": t.ticket_number,
        "ticket_code": t.ticket_code,
        "type": t.type.value,
        "priority": t.priority.value if isinstance(t.priority, TicketPriority) else t.priority,
        "status": TicketStatus(t.status).value,
        "customer_name": t.customer_name,
        "customer_phone": t.customer_phone,
        "customer_email": t.customer_email,
        "location_ref": t.location_ref,
        "latitude": t.location.latitude if t.location else None,
        "longitude": t.location.longitude if t.location else None,
        "area": t.area,
        "title": t.title,
        "description": t.description,
        "created_at": t.created_at.isoformat(),
        "sla_deadline": t.sla_deadline.isoformat(),
        "closed_at": t.closed_at.isoformat() if t.closed_at else None,
        "duration_minutes": t.duration_minutes,
        "perform_status": t.perform_status.value if t.perform_status else None,
        "ticket_fee": str(t.ticket_fee),
        "transport_fee": str(t.transport_fee),
        "bonus": str(t.bonus),
        "action_description": t.action_description,
        "proof_refs": list(t.proof_refs),
        "speedtest_result": t.speedtest_result,
        "speedtest_ref": t.speedtest_ref,
        "closed_note": t.closed_note,
        "rejection_reason": t.rejection_reason,
        "reopen_reason": t.reopen_reason,
    }
    if assignments is not None:
        data["assignees"] = [
            {
                "technician_id": a.technician_id,
                "assignment_type": a.assignment_type.value,
                "assigned_at": a.assigned_at.isoformat(),
            }
            for a in assignments
        ]
    return data


def serialize_technician(t: Technician) -> dict:
    return {
        "id": t.id,
        "name": t.name,
        "role": t.role.value,
        "is_backbone_specialist": t.is_backbone_specialist,
        "is_vendor_specialist": t.is_vendor_specialist,
        "is_active": t.is_active,
    }
