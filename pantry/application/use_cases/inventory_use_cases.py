"""Inventory use cases"""
import logging
from typing import List, Optional

from pantry.domain.entities.inventory import (
    ImagePayload,
    InventoryItem,
    QuantityChange,
    StoredImage,
    filter_items,
    normalize_item_name,
    validate_quantity,
)
from pantry.domain.exceptions import InventoryError, ItemNotFoundError, StoreError
from pantry.domain.repositories.blob_store import BlobStore
from pantry.domain.repositories.inventory_repository import DocumentStore
from pantry.application.dto.inventory_dto import (
    InventoryItemCreateDTO,
    InventoryItemUpdateDTO,
    InventoryItemResponseDTO,
    QuantityChangeResponseDTO,
)
from pantry.infrastructure.storage import ImageLimits, store_image, validate_image

logger = logging.getLogger(__name__)


class InventoryUseCases:
    """Use cases for inventory operations

    Names are normalized and validated before any store call. Quantity
    changes go through the store's atomic ``increment``; renames go through
    ``rekey``. Blob cleanup happens after the document write commits.
    """

    def __init__(
        self,
        document_store: DocumentStore,
        blob_store: BlobStore,
        image_limits: Optional[ImageLimits] = None,
    ):
        self.document_store = document_store
        self.blob_store = blob_store
        self.image_limits = image_limits or ImageLimits()

    async def load_inventory(self) -> List[InventoryItemResponseDTO]:
        """Get every inventory item in store order"""
        items = await self.document_store.list_all()
        return [self._inventory_item_to_dto(item) for item in items]

    async def search_inventory(self, query: Optional[str] = None) -> List[InventoryItemResponseDTO]:
        """Load the inventory and keep the items whose name contains query"""
        return filter_items(await self.load_inventory(), query)

    async def get_inventory_item(self, name: str) -> InventoryItemResponseDTO:
        """Get inventory item by name"""
        key = normalize_item_name(name)
        item = await self.document_store.get(key)
        if not item:
            raise ItemNotFoundError(key)
        return self._inventory_item_to_dto(item)

    async def add_inventory_item(
        self, item_data: InventoryItemCreateDTO, image: Optional[ImagePayload] = None
    ) -> InventoryItemResponseDTO:
        """Add quantity to an item, creating it when absent.

        An existing item keeps its image; a supplied image is only used
        when the item is created.
        """
        key = normalize_item_name(item_data.name)
        quantity = validate_quantity(item_data.quantity)
        if image is not None:
            validate_image(image, self.image_limits)

        stored = await store_image(image, self.blob_store, self.image_limits) if image is not None else None
        template = InventoryItem(
            name=key,
            quantity=quantity,
            image_url=stored.url if stored else None,
            image_path=stored.path if stored else None,
        )

        try:
            change = await self.document_store.increment(key, quantity, create_with=template)
        except InventoryError:
            if stored:
                await self._discard_blob(stored.path)
            raise

        if stored and not change.created:
            await self._discard_blob(stored.path)

        if change.created:
            logger.info("Added inventory item '%s' with quantity %d", key, quantity)
        else:
            logger.info("Added %d to inventory item '%s' (now %d)", quantity, key, change.current.quantity)
        return self._inventory_item_to_dto(change.current)

    async def increment_inventory_item(self, name: str) -> QuantityChangeResponseDTO:
        """Increase quantity by one, creating the item at quantity 1 if absent"""
        key = normalize_item_name(name)
        change = await self.document_store.increment(
            key, 1, create_with=InventoryItem(name=key, quantity=1)
        )
        logger.info("Incremented inventory item '%s' to %d", key, change.current.quantity)
        return self._quantity_change_to_dto(key, change)

    async def decrement_inventory_item(self, name: str) -> QuantityChangeResponseDTO:
        """Decrease quantity by one; the last unit removes the item and its image"""
        key = normalize_item_name(name)
        change = await self.document_store.increment(key, -1)

        if change.removed:
            logger.info("Removed inventory item '%s' after last decrement", key)
            await self._delete_item_image(change.previous, strict=False)
        else:
            logger.info("Decremented inventory item '%s' to %d", key, change.current.quantity)
        return self._quantity_change_to_dto(key, change)

    async def update_inventory_item(
        self,
        name: str,
        item_data: InventoryItemUpdateDTO,
        image: Optional[ImagePayload] = None,
    ) -> InventoryItemResponseDTO:
        """Rename, requantify or re-image an item.

        The old document is replaced by the new one in a single store
        transaction. Renaming onto another existing item is rejected.
        """
        old_key = normalize_item_name(name)
        new_key = normalize_item_name(item_data.name)
        quantity = validate_quantity(item_data.quantity)
        if image is not None:
            validate_image(image, self.image_limits)

        existing = await self.document_store.get(old_key)
        if not existing:
            raise ItemNotFoundError(old_key)

        replaces_image = image is not None or (item_data.remove_image and existing.has_image)
        if new_key == old_key and quantity == existing.quantity and not replaces_image:
            return self._inventory_item_to_dto(existing)

        stored: Optional[StoredImage] = None
        if image is not None:
            stored = await store_image(image, self.blob_store, self.image_limits)

        if stored:
            image_url, image_path = stored.url, stored.path
        elif item_data.remove_image:
            image_url, image_path = None, None
        else:
            image_url, image_path = existing.image_url, existing.image_path

        updated = InventoryItem(
            name=new_key,
            quantity=quantity,
            image_url=image_url,
            image_path=image_path,
        )

        try:
            result = await self.document_store.rekey(old_key, updated)
        except InventoryError:
            if stored:
                await self._discard_blob(stored.path)
            raise

        if replaces_image and existing.has_image:
            await self._delete_item_image(existing, strict=False)

        logger.info("Updated inventory item '%s' -> '%s' (quantity %d)", old_key, new_key, quantity)
        return self._inventory_item_to_dto(result)

    async def delete_inventory_item(self, name: str) -> None:
        """Delete the item's image, then the item"""
        key = normalize_item_name(name)
        existing = await self.document_store.get(key)
        if not existing:
            raise ItemNotFoundError(key)

        await self._delete_item_image(existing, strict=True)
        if not await self.document_store.delete(key):
            raise ItemNotFoundError(key)
        logger.info("Deleted inventory item '%s'", key)

    def resolve_image_path(self, item: InventoryItem) -> Optional[str]:
        """Blob path of an item's image.

        Items written before the path was recorded fall back to parsing
        the path out of the image URL.
        """
        if item.image_path:
            return item.image_path
        if not item.image_url:
            return None

        path = self.blob_store.path_from_url(item.image_url)
        if path is None:
            logger.warning("Cannot derive blob path for '%s' from URL %s", item.name, item.image_url)
        return path

    async def _delete_item_image(self, item: Optional[InventoryItem], strict: bool) -> None:
        if item is None:
            return
        path = self.resolve_image_path(item)
        if not path:
            return
        if strict:
            await self.blob_store.delete(path)
        else:
            await self._discard_blob(path)

    async def _discard_blob(self, path: str) -> None:
        try:
            await self.blob_store.delete(path)
        except StoreError as e:
            logger.warning("Orphaned blob %s: %s", path, e)

    def _quantity_change_to_dto(self, key: str, change: QuantityChange) -> QuantityChangeResponseDTO:
        current = change.current
        return QuantityChangeResponseDTO(
            name=key,
            quantity=current.quantity if current else 0,
            removed=change.removed,
            item=self._inventory_item_to_dto(current) if current else None,
        )

    def _inventory_item_to_dto(self, item: InventoryItem) -> InventoryItemResponseDTO:
        """Convert InventoryItem entity to InventoryItemResponseDTO"""
        return InventoryItemResponseDTO(
            name=item.name,
            quantity=item.quantity,
            image_url=item.image_url,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )
