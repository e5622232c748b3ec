"""Client-side state of the inventory page"""
import logging
from typing import List, Optional

from pantry.application.dto.inventory_dto import InventoryItemResponseDTO
from pantry.client.api_client import InventoryApiClient
from pantry.domain.entities.inventory import ImagePayload, filter_items, normalize_item_name, validate_quantity
from pantry.domain.exceptions import ValidationError

logger = logging.getLogger(__name__)

EMPTY_NAME_MESSAGE = "This field cannot be empty"


class InventoryView:
    """Local inventory list, search filter and form error of the page.

    The list is a disposable cache: it is replaced in full by ``load`` on
    mount and after every successful mutation, never patched. A failed load
    leaves the previous list in place.
    """

    def __init__(self, client: InventoryApiClient):
        self.client = client
        self.items: List[InventoryItemResponseDTO] = []
        self.search_value = ""
        self.error: Optional[str] = None

    @property
    def visible_items(self) -> List[InventoryItemResponseDTO]:
        """Items matching the current search value, in list order"""
        return filter_items(self.items, self.search_value)

    def set_search(self, value: str) -> None:
        self.search_value = value or ""

    async def load(self) -> List[InventoryItemResponseDTO]:
        """Replace the local list with everything in the store"""
        self.items = await self.client.list_items()
        return self.items

    async def add_item(
        self,
        name: str,
        quantity: int = 1,
        photo: Optional[ImagePayload] = None,
        photo_base64: Optional[str] = None,
    ) -> bool:
        """Submit the add form. Returns False when the form was rejected."""
        if not self._validate_form(name, quantity):
            return False
        try:
            await self.client.add_item(name, quantity, photo=photo, photo_base64=photo_base64)
        except ValidationError as e:
            self.error = str(e)
            return False
        await self.load()
        return True

    async def increment_item(self, name: str) -> None:
        await self.client.increment_item(name)
        await self.load()

    async def decrement_item(self, name: str) -> None:
        await self.client.decrement_item(name)
        await self.load()

    async def update_item(
        self,
        name: str,
        new_name: str,
        quantity: int,
        photo: Optional[ImagePayload] = None,
        photo_base64: Optional[str] = None,
        remove_photo: bool = False,
    ) -> bool:
        """Submit the edit form. Returns False when the form was rejected."""
        if not self._validate_form(new_name, quantity):
            return False
        try:
            await self.client.update_item(
                name, new_name, quantity,
                photo=photo, photo_base64=photo_base64, remove_photo=remove_photo,
            )
        except ValidationError as e:
            self.error = str(e)
            return False
        await self.load()
        return True

    async def delete_item(self, name: str) -> None:
        await self.client.delete_item(name)
        await self.load()

    def _validate_form(self, name: str, quantity: int) -> bool:
        try:
            normalize_item_name(name)
        except ValidationError:
            self.error = EMPTY_NAME_MESSAGE
            return False
        try:
            validate_quantity(quantity)
        except ValidationError as e:
            self.error = str(e)
            return False
        self.error = None
        return True
