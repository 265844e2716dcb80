"""Engine tunables injected into use cases, plus the clock helpers they share."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

from fieldops.domain.policies.candidate_selection import DEFAULT_PROXIMITY_RADIUS_KM
from fieldops.domain.policies.dispatch_ratio import DispatchRatio
from fieldops.domain.policies.sla import SlaPolicy


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class EngineConfig:
    proximity_radius_km: float = DEFAULT_PROXIMITY_RADIUS_KM
    sla: SlaPolicy = field(default_factory=SlaPolicy)
    default_ratio: DispatchRatio = field(default_factory=DispatchRatio)
    dispatch_max_attempts: int = 3
    stale_assignment_hours: int = 24
    business_timezone: str = "UTC"

    @property
    def tz(self) -> tzinfo:
        if self.business_timezone.upper() == "UTC":
            return timezone.utc
        return ZoneInfo(self.business_timezone)

    def start_of_day(self, now: datetime) -> datetime:
        """Midnight of ``now``'s calendar day in the business timezone."""
        local = now.astimezone(self.tz)
        return local.replace(hour=0, minute=0, second=0, microsecond=0)
