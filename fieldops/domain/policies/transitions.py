"""TransitionPolicy — allowed source statuses and acting roles per lifecycle action."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from fieldops.domain.entities.ticket import Ticket
from fieldops.domain.errors import InvalidStateTransition, PermissionDenied
from fieldops.domain.value_objects.enums import TicketStatus, UserRole


class Action(str, Enum):
    CREATE = "create"
    AUTO_ASSIGN = "auto_assign"
    MANUAL_ASSIGN = "manual_assign"
    REASSIGN = "reassign"
    UNASSIGN = "unassign"
    START_WORK = "start_work"
    REPORT_NO_RESPONSE = "report_no_response"
    CONFIRM_REJECT = "confirm_reject"
    CANCEL_REJECT = "cancel_reject"
    CLOSE_BY_HELPDESK = "close_by_helpdesk"
    CLOSE = "close"
    REOPEN = "reopen"
    REOPEN_REJECTED = "reopen_rejected"
    CHANGE_TYPE = "change_type"
    RECALCULATE_BONUSES = "recalculate_bonuses"
    RESET_STALE = "reset_stale_assignments"
    WRITE_SETTINGS = "write_settings"


@dataclass(frozen=True)
class Actor:
    """Who is calling: the acting user id and role."""

    user_id: int | None
    role: UserRole


_STAFF = frozenset({UserRole.SUPERADMIN, UserRole.ADMIN, UserRole.HELPDESK})
_ADMINS = frozenset({UserRole.SUPERADMIN, UserRole.ADMIN})
_TECHNICIANS = frozenset({UserRole.TECHNICIAN})

_NON_TERMINAL = frozenset(
    {
        TicketStatus.OPEN,
        TicketStatus.WAITING_ASSIGNMENT,
        TicketStatus.ASSIGNED,
        TicketStatus.IN_PROGRESS,
        TicketStatus.PENDING_REJECTION,
        TicketStatus.OVERDUE,
    }
)

ALLOWED_ROLES: dict[Action, frozenset[UserRole]] = {
    Action.CREATE: _STAFF,
    Action.AUTO_ASSIGN: _TECHNICIANS,
    Action.MANUAL_ASSIGN: _STAFF,
    Action.REASSIGN: _STAFF,
    Action.UNASSIGN: _ADMINS,
    Action.START_WORK: _TECHNICIANS,
    Action.REPORT_NO_RESPONSE: _TECHNICIANS,
    Action.CONFIRM_REJECT: _STAFF,
    Action.CANCEL_REJECT: _STAFF,
    Action.CLOSE_BY_HELPDESK: _STAFF,
    Action.CLOSE: _TECHNICIANS,
    Action.REOPEN: _STAFF,
    Action.REOPEN_REJECTED: _STAFF,
    Action.CHANGE_TYPE: _STAFF,
    Action.RECALCULATE_BONUSES: _ADMINS,
    Action.RESET_STALE: _ADMINS,
    Action.WRITE_SETTINGS: _ADMINS,
}

ALLOWED_SOURCES: dict[Action, frozenset[TicketStatus]] = {
    Action.MANUAL_ASSIGN: frozenset(
        {
            TicketStatus.OPEN,
            TicketStatus.WAITING_ASSIGNMENT,
            TicketStatus.ASSIGNED,
            TicketStatus.IN_PROGRESS,
        }
    ),
    Action.REASSIGN: _NON_TERMINAL,
    Action.UNASSIGN: _NON_TERMINAL,
    Action.START_WORK: frozenset({TicketStatus.ASSIGNED}),
    Action.REPORT_NO_RESPONSE: frozenset({TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS}),
    Action.CONFIRM_REJECT: frozenset({TicketStatus.PENDING_REJECTION}),
    Action.CANCEL_REJECT: frozenset({TicketStatus.PENDING_REJECTION}),
    Action.CLOSE_BY_HELPDESK: frozenset({TicketStatus.PENDING_REJECTION}),
    Action.CLOSE: frozenset({TicketStatus.IN_PROGRESS}),
    Action.REOPEN: frozenset({TicketStatus.CLOSED}),
    Action.REOPEN_REJECTED: frozenset({TicketStatus.REJECTED}),
    Action.CHANGE_TYPE: _NON_TERMINAL,
}


def ensure_role(actor: Actor, action: Action) -> None:
    """Single capability check per operation."""
    allowed = ALLOWED_ROLES.get(action, frozenset())
    if actor.role not in allowed:
        raise PermissionDenied(f"Role '{actor.role.value}' may not {action.value}")


def ensure_source(ticket: Ticket, action: Action) -> None:
    if ticket.status not in ALLOWED_SOURCES[action]:
        raise InvalidStateTransition(ticket.id, TicketStatus(ticket.status).value, action.value)
