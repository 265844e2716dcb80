"""SlaPolicy — deadline per ticket type."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from fieldops.domain.value_objects.enums import TicketType


@dataclass(frozen=True)
class SlaPolicy:
    maintenance_hours: int = 24
    installation_hours: int = 72

    def hours_for(self, ticket_type: TicketType) -> int:
        if ticket_type == TicketType.INSTALLATION:
            return self.installation_hours
        return self.maintenance_hours

    def deadline(self, ticket_type: TicketType, created_at: datetime) -> datetime:
        """Deadline is always anchored to creation time, never to 'now'."""
        return created_at + timedelta(hours=self.hours_for(ticket_type))
