"""ManageFeesUseCase — admin writes to global tunables and per-technician fee overrides."""

from __future__ import annotations

import logging

from fieldops.application.ports.settings_store import SettingsStore
from fieldops.application.ports.technician_directory import TechnicianDirectory
from fieldops.application.ports.technician_fee_repo import TechnicianFeeRepository
from fieldops.application.ports.unit_of_work import UnitOfWork
from fieldops.application.tunables import (
    RATIO_INSTALLATION_KEY,
    RATIO_MAINTENANCE_KEY,
    ticket_fee_key,
    transport_fee_key,
)
from fieldops.domain.entities.fees import FeeSchedule, TechnicianFee
from fieldops.domain.errors import NotFound, ValidationError
from fieldops.domain.policies.transitions import Action, Actor, ensure_role
from fieldops.domain.value_objects.enums import TicketType
from fieldops.domain.value_objects.money import to_money

logger = logging.getLogger(__name__)

WRITABLE_KEYS = frozenset(
    {RATIO_MAINTENANCE_KEY, RATIO_INSTALLATION_KEY}
    | {ticket_fee_key(t) for t in TicketType}
    | {transport_fee_key(t) for t in TicketType}
)


class ManageFeesUseCase:
    def __init__(
        self,
        uow: UnitOfWork,
        settings: SettingsStore,
        fee_repo: TechnicianFeeRepository,
        directory: TechnicianDirectory,
    ):
        self._uow = uow
        self._settings = settings
        self._fees = fee_repo
        self._directory = directory

    async def set_setting(self, actor: Actor, key: str, value: str | None) -> None:
        ensure_role(actor, Action.WRITE_SETTINGS)
        if key not in WRITABLE_KEYS:
            raise ValidationError(f"Unknown setting '{key}'")
        if value is not None and key in (RATIO_MAINTENANCE_KEY, RATIO_INSTALLATION_KEY):
            if not str(value).strip().isdigit() or int(value) <= 0:
                raise ValidationError(f"{key} must be a positive integer")
        elif value is not None:
            value = str(to_money(value))
        async with self._uow.transaction():
            await self._settings.set(key, value)
        logger.info("Setting %s = %r", key, value)

    async def set_technician_fee(
        self, actor: Actor, technician_id: int, ticket_type: TicketType | str, ticket_fee, transport_fee
    ) -> TechnicianFee:
        ensure_role(actor, Action.WRITE_SETTINGS)
        try:
            ticket_type = TicketType(ticket_type)
        except ValueError:
            raise ValidationError(f"Unknown ticket type '{ticket_type}'") from None
        schedule = FeeSchedule.of(ticket_fee, transport_fee)

        async with self._uow.transaction():
            if await self._directory.get_by_id(technician_id) is None:
                raise NotFound("Technician", technician_id)
            fee = await self._fees.upsert(
                TechnicianFee(
                    id=None,
                    technician_id=technician_id,
                    ticket_type=ticket_type,
                    ticket_fee=schedule.ticket_fee,
                    transport_fee=schedule.transport_fee,
                )
            )
        logger.info(
            "Technician %s fee for %s: ticket=%s, transport=%s",
            technician_id, ticket_type.value, fee.ticket_fee, fee.transport_fee,
        )
        return fee

    async def technician_fees(self, technician_id: int) -> list[TechnicianFee]:
        return await self._fees.list_for_technician(technician_id)
