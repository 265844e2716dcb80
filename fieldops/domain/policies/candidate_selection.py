"""CandidateSelectionPolicy — pick the single best open ticket for a technician."""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime

from fieldops.domain.entities.ticket import Ticket
from fieldops.domain.value_objects.enums import priority_rank
from fieldops.domain.value_objects.geo_point import GeoPoint, distance_km

DEFAULT_PROXIMITY_RADIUS_KM = 2.0


@dataclass(frozen=True)
class SelectionContext:
    """Everything the selector needs to know about the requesting technician."""

    now: datetime
    anchor: GeoPoint | None  # location of the last ticket closed today, if any
    radius_km: float = DEFAULT_PROXIMITY_RADIUS_KM
    rng: random.Random | None = None


@dataclass(frozen=True)
class CandidateSelection:
    """Result of the candidate selection policy."""

    ticket: Ticket
    rule: str
    distance_km: float | None
    reason: str


def _age_key(ticket: Ticket) -> tuple:
    return (ticket.created_at, ticket.id or 0)


def _label(priority) -> str:
    return getattr(priority, "value", priority) or "unknown"


def select_candidate(pool: list[Ticket], context: SelectionContext) -> CandidateSelection | None:
    """Pure function: choose one ticket from ``pool`` or return None if it is empty.

    Rules, first match wins:
      1. Overdue tickets win outright, earliest SLA deadline first.
      2. No anchor for today (first job, or unresolvable last location) →
         oldest ticket.
      3. Tickets within ``radius_km`` of the anchor → oldest of those.
      4. Otherwise best priority, then oldest; if several tickets share both
         the best priority and the exact same creation time, one of them is
         drawn at random.

    Tickets with unknown coordinates are treated as infinitely far away.
    """
    if not pool:
        return None

    overdue = sorted(
        (t for t in pool if t.is_overdue(context.now)),
        key=lambda t: (t.sla_deadline, *_age_key(t)),
    )
    if overdue:
        chosen = overdue[0]
        return CandidateSelection(
            ticket=chosen,
            rule="overdue",
            distance_km=None,
            reason=f"Overdue since {chosen.sla_deadline.isoformat()}",
        )

    if context.anchor is None:
        chosen = min(pool, key=_age_key)
        return CandidateSelection(
            ticket=chosen,
            rule="oldest",
            distance_km=None,
            reason="No completed job today → oldest open ticket",
        )

    distances = {id(t): distance_km(context.anchor, t.location) for t in pool}
    nearby = [t for t in pool if distances[id(t)] <= context.radius_km]
    if nearby:
        chosen = min(nearby, key=_age_key)
        dist = distances[id(chosen)]
        return CandidateSelection(
            ticket=chosen,
            rule="proximity",
            distance_km=round(dist, 2),
            reason=f"Oldest ticket within {context.radius_km:g} km ({dist:.2f} km)",
        )

    best_rank = min(priority_rank(t.priority) for t in pool)
    best_group = [t for t in pool if priority_rank(t.priority) == best_rank]
    oldest_at = min(t.created_at for t in best_group)
    tied = sorted((t for t in best_group if t.created_at == oldest_at), key=_age_key)

    if len(tied) > 1:
        rng = context.rng or random.Random()
        chosen = rng.choice(tied)
        reason = f"Priority {_label(chosen.priority)}: random pick among {len(tied)} equally old tickets"
    else:
        chosen = tied[0]
        reason = f"Priority {_label(chosen.priority)}, oldest first"

    dist = distances[id(chosen)]
    return CandidateSelection(
        ticket=chosen,
        rule="priority",
        distance_km=round(dist, 2) if dist != float("inf") else None,
        reason=reason,
    )
