"""Fee entities — global per-type schedule and per-technician overrides."""

from dataclasses import dataclass
from decimal import Decimal

from fieldops.domain.value_objects.enums import TicketType
from fieldops.domain.value_objects.money import ZERO, money_sum, to_money


@dataclass(frozen=True)
class FeeSchedule:
    ticket_fee: Decimal = ZERO
    transport_fee: Decimal = ZERO

    @classmethod
    def of(cls, ticket_fee, transport_fee) -> "FeeSchedule":
        return cls(ticket_fee=to_money(ticket_fee), transport_fee=to_money(transport_fee))

    @property
    def bonus(self) -> Decimal:
        return money_sum(self.ticket_fee, self.transport_fee)


@dataclass
class TechnicianFee:
    id: int | None
    technician_id: int
    ticket_type: TicketType
    ticket_fee: Decimal
    transport_fee: Decimal

    def schedule(self) -> FeeSchedule:
        return FeeSchedule.of(self.ticket_fee, self.transport_fee)
