"""Ticket entity — a field-service job for one customer location."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from fieldops.domain.value_objects.enums import (
    ACTIVE_JOB_STATUSES,
    TERMINAL_STATUSES,
    PerformStatus,
    TicketPriority,
    TicketStatus,
    TicketType,
)
from fieldops.domain.value_objects.geo_point import GeoPoint
from fieldops.domain.value_objects.money import ZERO


@dataclass
class Ticket:
    id: int | None
    ticket_number: str
    type: TicketType
    priority: TicketPriority | str
    status: TicketStatus
    customer_name: str
    customer_phone: str
    location_ref: str
    title: str
    description: str
    created_at: datetime
    sla_deadline: datetime
    ticket_code: str | None = None
    customer_email: str | None = None
    location: GeoPoint | None = None
    area: str | None = None

    # Fee snapshot
    ticket_fee: Decimal = ZERO
    transport_fee: Decimal = ZERO
    bonus: Decimal = ZERO

    # Close artifacts
    closed_at: datetime | None = None
    duration_minutes: int | None = None
    perform_status: PerformStatus | None = None
    action_description: str | None = None
    proof_refs: list[str] = field(default_factory=list)
    speedtest_result: str | None = None
    speedtest_ref: str | None = None
    closed_note: str | None = None

    # Free-text history
    rejection_reason: str | None = None
    reopen_reason: str | None = None

    def is_overdue(self, now: datetime) -> bool:
        return self.sla_deadline < now

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def occupies_technician(self) -> bool:
        return self.status in ACTIVE_JOB_STATUSES

    def minutes_open(self, until: datetime) -> int:
        return int((until - self.created_at).total_seconds() // 60)

    def append_rejection_note(self, tag: str, text: str) -> None:
        """Append a tagged line to the rejection history without losing prior text."""
        previous = self.rejection_reason or ""
        self.rejection_reason = f"{previous}\n[{tag}] {text.strip()}".strip()

    def append_reopen_note(self, tag: str, text: str) -> None:
        line = f"[{tag}] {text.strip()}"
        self.reopen_reason = f"{self.reopen_reason}\n{line}" if self.reopen_reason else line

    def clear_close_artifacts(self) -> None:
        self.closed_at = None
        self.duration_minutes = None
        self.perform_status = None
        self.ticket_fee = ZERO
        self.transport_fee = ZERO
        self.bonus = ZERO
        self.action_description = None
        self.proof_refs = []
        self.speedtest_result = None
        self.speedtest_ref = None
        self.closed_note = None
