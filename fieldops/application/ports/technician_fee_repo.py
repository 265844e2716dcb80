"""Port interface for per-technician fee overrides."""

from abc import ABC, abstractmethod

from fieldops.domain.entities.fees import TechnicianFee
from fieldops.domain.value_objects.enums import TicketType


class TechnicianFeeRepository(ABC):
    @abstractmethod
    async def get_for_type(self, technician_id: int, ticket_type: TicketType) -> TechnicianFee | None:
        ...

    @abstractmethod
    async def list_for_technician(self, technician_id: int) -> list[TechnicianFee]:
        ...

    @abstractmethod
    async def upsert(self, fee: TechnicianFee) -> TechnicianFee:
        ...
