"""Assignment entity — one technician bound to one ticket."""

from dataclasses import dataclass
from datetime import datetime

from fieldops.domain.value_objects.enums import AssignmentType

MAX_ACTIVE_ASSIGNEES = 2


@dataclass
class Assignment:
    id: int | None
    ticket_id: int
    technician_id: int
    assigned_at: datetime
    assignment_type: AssignmentType = AssignmentType.MANUAL
    active: bool = True
