"""Port interface for transaction boundaries."""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager


class UnitOfWork(ABC):
    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Commit on clean exit, roll back when the block raises."""
        ...
