"""Inventory document store interface"""
from abc import ABC, abstractmethod
from typing import List, Optional
from pantry.domain.entities.inventory import InventoryItem, QuantityChange


class DocumentStore(ABC):
    """Key-value document store holding one document per inventory item.

    Keys are normalized item names. Implementations must make
    ``increment`` and ``rekey`` atomic with respect to other calls.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[InventoryItem]:
        """Get the document stored under key"""
        pass

    @abstractmethod
    async def set(self, item: InventoryItem) -> InventoryItem:
        """Create or overwrite the document stored under item.name"""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete the document, returning False if it did not exist"""
        pass

    @abstractmethod
    async def list_all(self) -> List[InventoryItem]:
        """Get every document, ordered by key"""
        pass

    @abstractmethod
    async def increment(
        self, key: str, delta: int, create_with: Optional[InventoryItem] = None
    ) -> QuantityChange:
        """Atomically add delta to the quantity stored under key.

        A missing document is created from ``create_with`` when given,
        otherwise ItemNotFoundError is raised. A document whose quantity
        drops below 1 is deleted.
        """
        pass

    @abstractmethod
    async def rekey(self, old_key: str, item: InventoryItem) -> InventoryItem:
        """Atomically replace the document under old_key with item.

        Raises ItemNotFoundError if old_key is missing and
        ItemAlreadyExistsError if item.name is taken by another document.
        """
        pass

    async def close(self) -> None:
        """Release resources held by the store"""
        pass
