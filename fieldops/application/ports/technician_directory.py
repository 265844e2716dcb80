"""Port interface for the technician directory."""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from fieldops.domain.entities.technician import Technician


class TechnicianDirectory(ABC):
    @abstractmethod
    async def get_by_id(self, technician_id: int) -> Technician | None:
        ...

    @abstractmethod
    async def lock(self, technician_ids: Iterable[int]) -> None:
        """Row-lock the given users in id order for the rest of the transaction."""
        ...

    @abstractmethod
    async def list_free(self, exclude_id: int | None = None) -> list[Technician]:
        """Active technicians with no assigned/in-progress job."""
        ...
