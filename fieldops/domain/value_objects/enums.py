"""Domain enums — pure Python, no external dependencies."""

from enum import Enum


class TicketType(str, Enum):
    HOME_MAINTENANCE = "home_maintenance"
    BACKBONE_MAINTENANCE = "backbone_maintenance"
    INSTALLATION = "installation"

    def is_maintenance(self) -> bool:
        return self in (TicketType.HOME_MAINTENANCE, TicketType.BACKBONE_MAINTENANCE)


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Lower rank is served first; anything unknown sorts last
PRIORITY_RANK: dict[str, int] = {
    TicketPriority.CRITICAL.value: 0,
    TicketPriority.HIGH.value: 1,
    TicketPriority.MEDIUM.value: 2,
    TicketPriority.LOW.value: 3,
}
UNKNOWN_PRIORITY_RANK = 99


def priority_rank(priority: "TicketPriority | str | None") -> int:
    if priority is None:
        return UNKNOWN_PRIORITY_RANK
    value = priority.value if isinstance(priority, TicketPriority) else str(priority)
    return PRIORITY_RANK.get(value, UNKNOWN_PRIORITY_RANK)


class TicketStatus(str, Enum):
    OPEN = "open"
    WAITING_ASSIGNMENT = "waiting_assignment"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    PENDING_REJECTION = "pending_rejection"
    REJECTED = "rejected"
    CLOSED = "closed"
    # Legacy value found in old rows; never produced by current transitions
    OVERDUE = "overdue"


# Statuses that occupy a technician ("one active job" rule)
ACTIVE_JOB_STATUSES = frozenset(
    {TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS, TicketStatus.OVERDUE}
)

TERMINAL_STATUSES = frozenset({TicketStatus.CLOSED, TicketStatus.REJECTED})


class PerformStatus(str, Enum):
    PERFORM = "perform"
    NOT_PERFORM = "not_perform"


class AssignmentType(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"


class UserRole(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    HELPDESK = "helpdesk"
    TECHNICIAN = "technician"


class ReopenMode(str, Enum):
    CURRENT = "current"
    AUTO = "auto"
