"""Port interface for the key/value settings store."""

from abc import ABC, abstractmethod


class SettingsStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    async def set(self, key: str, value: str | None) -> None:
        ...

    @abstractmethod
    async def get_all(self) -> dict[str, str | None]:
        ...
