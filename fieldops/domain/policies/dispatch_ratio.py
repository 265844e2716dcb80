"""DispatchRatioPolicy — which ticket pools a technician may draw from, in order."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from fieldops.domain.entities.technician import Technician
from fieldops.domain.entities.ticket import Ticket
from fieldops.domain.value_objects.enums import TicketType

DEFAULT_RATIO_MAINTENANCE = 4
DEFAULT_RATIO_INSTALLATION = 2


@dataclass(frozen=True)
class DispatchRatio:
    maintenance: int = DEFAULT_RATIO_MAINTENANCE
    installation: int = DEFAULT_RATIO_INSTALLATION

    @property
    def cycle_size(self) -> int:
        return self.maintenance + self.installation


@dataclass(frozen=True)
class EligibilityTier:
    """One pool to hand to the candidate selector; tiers are tried in order."""

    name: str
    tickets: list[Ticket]


def preferred_type(completed_today: int, ratio: DispatchRatio) -> TicketType:
    """Cycle through ``ratio.maintenance`` maintenance jobs, then ``ratio.installation`` installs.

    With the default 4:2 ratio, completed counts 0-3 prefer maintenance,
    4-5 prefer installation and 6 starts the cycle again.
    """
    cycle = ratio.cycle_size
    position = completed_today % cycle if cycle > 0 else 0
    if position < ratio.maintenance:
        return TicketType.HOME_MAINTENANCE
    return TicketType.INSTALLATION


def build_eligibility_tiers(
    open_tickets: list[Ticket],
    technician: Technician,
    completed_today: int,
    ratio: DispatchRatio,
    now: datetime,
) -> list[EligibilityTier]:
    """Split the open-ticket pool into the ordered tiers this technician may take.

    Backbone specialists only ever see backbone_maintenance tickets. Everyone
    else sees home_maintenance and installation tickets:
      1. home_maintenance only, when the technician is forced onto it;
      2. overdue tickets of either type (they beat the ratio);
      3. the type preferred by the ratio cycle;
      4. the other type.
    Empty tiers are dropped.
    """
    if technician.is_backbone_specialist:
        tiers = [
            EligibilityTier(
                "backbone",
                [t for t in open_tickets if t.type == TicketType.BACKBONE_MAINTENANCE],
            )
        ]
        return [tier for tier in tiers if tier.tickets]

    home = [t for t in open_tickets if t.type == TicketType.HOME_MAINTENANCE]
    install = [t for t in open_tickets if t.type == TicketType.INSTALLATION]

    tiers: list[EligibilityTier] = []
    if technician.force_home_maintenance and home:
        tiers.append(EligibilityTier("forced_home_maintenance", home))

    tiers.append(EligibilityTier("overdue", [t for t in home + install if t.is_overdue(now)]))

    preferred = preferred_type(completed_today, ratio)
    if preferred == TicketType.HOME_MAINTENANCE:
        tiers.append(EligibilityTier("preferred_home_maintenance", home))
        tiers.append(EligibilityTier("fallback_installation", install))
    else:
        tiers.append(EligibilityTier("preferred_installation", install))
        tiers.append(EligibilityTier("fallback_home_maintenance", home))

    return [tier for tier in tiers if tier.tickets]
