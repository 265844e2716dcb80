"""Typed reads and writes over the key/value settings store."""

from __future__ import annotations

import logging

from fieldops.application.ports.settings_store import SettingsStore
from fieldops.domain.entities.fees import FeeSchedule
from fieldops.domain.policies.dispatch_ratio import DispatchRatio
from fieldops.domain.value_objects.enums import TicketType
from fieldops.domain.value_objects.money import to_money

logger = logging.getLogger(__name__)

RATIO_MAINTENANCE_KEY = "preference_ratio_maintenance"
RATIO_INSTALLATION_KEY = "preference_ratio_installation"


def ticket_fee_key(ticket_type: TicketType) -> str:
    return f"ticket_fee_{ticket_type.value}"


def transport_fee_key(ticket_type: TicketType) -> str:
    return f"transport_fee_{ticket_type.value}"


async def read_fee_schedule(settings: SettingsStore, ticket_type: TicketType) -> FeeSchedule:
    """Global fees for a ticket type; a missing key counts as zero."""
    return FeeSchedule(
        ticket_fee=to_money(await settings.get(ticket_fee_key(ticket_type))),
        transport_fee=to_money(await settings.get(transport_fee_key(ticket_type))),
    )


def _positive_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        logger.warning("Ignoring non-integer ratio setting %r", raw)
        return default
    return value if value > 0 else default


async def read_dispatch_ratio(settings: SettingsStore, default: DispatchRatio) -> DispatchRatio:
    return DispatchRatio(
        maintenance=_positive_int(await settings.get(RATIO_MAINTENANCE_KEY), default.maintenance),
        installation=_positive_int(await settings.get(RATIO_INSTALLATION_KEY), default.installation),
    )
