"""PerformanceLog entity — one technician's outcome and pay on one closed ticket."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from fieldops.domain.value_objects.enums import PerformStatus
from fieldops.domain.value_objects.money import ZERO


@dataclass
class PerformanceLog:
    id: int | None
    technician_id: int
    ticket_id: int
    result: PerformStatus
    completed_within_sla: bool
    duration_minutes: int
    ticket_fee: Decimal = ZERO
    transport_fee: Decimal = ZERO
    bonus: Decimal = ZERO
    created_at: datetime | None = None
