"""In-memory implementation of the inventory DocumentStore"""
import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional

from pantry.domain.entities.inventory import InventoryItem, QuantityChange
from pantry.domain.exceptions import ItemAlreadyExistsError, ItemNotFoundError
from pantry.domain.repositories.inventory_repository import DocumentStore


class InventoryRepositoryMemory(DocumentStore):
    """Process-local DocumentStore. Writes are serialized by one lock."""

    def __init__(self):
        self._documents: Dict[str, InventoryItem] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[InventoryItem]:
        item = self._documents.get(key)
        return replace(item) if item else None

    async def set(self, item: InventoryItem) -> InventoryItem:
        async with self._lock:
            return self._write(item)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._documents.pop(key, None) is not None

    async def list_all(self) -> List[InventoryItem]:
        return [replace(self._documents[key]) for key in sorted(self._documents)]

    async def increment(
        self, key: str, delta: int, create_with: Optional[InventoryItem] = None
    ) -> QuantityChange:
        async with self._lock:
            existing = self._documents.get(key)
            if existing is None:
                if create_with is None:
                    raise ItemNotFoundError(key)
                created = self._write(replace(create_with, name=key))
                return QuantityChange(previous=None, current=created)

            previous = replace(existing)
            quantity = existing.quantity + delta
            if quantity < 1:
                del self._documents[key]
                return QuantityChange(previous=previous, current=None)

            current = self._write(replace(existing, quantity=quantity))
            return QuantityChange(previous=previous, current=current)

    async def rekey(self, old_key: str, item: InventoryItem) -> InventoryItem:
        async with self._lock:
            existing = self._documents.get(old_key)
            if existing is None:
                raise ItemNotFoundError(old_key)
            if item.name != old_key and item.name in self._documents:
                raise ItemAlreadyExistsError(item.name)

            del self._documents[old_key]
            return self._write(replace(item, created_at=existing.created_at, version=existing.version))

    def _write(self, item: InventoryItem) -> InventoryItem:
        now = datetime.utcnow()
        existing = self._documents.get(item.name)
        stored = replace(
            item,
            version=(existing.version if existing else item.version) + 1,
            created_at=existing.created_at if existing else item.created_at,
            updated_at=now,
        )
        self._documents[item.name] = stored
        return replace(stored)
