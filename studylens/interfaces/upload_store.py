"""Abstract base class for raw upload storage."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: LocalUploadStore (studylens/providers/store/)
class IUploadStore(ABC):
    """Contract for storing the original bytes of uploaded documents."""

    @abstractmethod
    async def save(self, key: str, data: bytes, media_type: str) -> None:
        """Persist *data* under *key*."""

    @abstractmethod
    async def read(self, key: str) -> tuple[bytes, str]:
        """Return ``(data, media_type)`` for *key*.

        Raises
        ------
        studylens.utils.errors.NotFoundError
            If nothing is stored under *key*.
        """

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove the stored bytes; ``True`` if something was deleted."""
