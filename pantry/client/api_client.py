"""HTTP client for the inventory API"""
import logging
from typing import List, Optional
from urllib.parse import quote

import httpx

from pantry.application.dto.inventory_dto import InventoryItemResponseDTO, QuantityChangeResponseDTO
from pantry.domain.entities.inventory import ImagePayload
from pantry.domain.exceptions import (
    InventoryError,
    ItemAlreadyExistsError,
    ItemNotFoundError,
    StoreError,
    ValidationError,
)
from pantry.infrastructure.config.settings import settings

logger = logging.getLogger(__name__)


class InventoryApiClient:
    """Async client for /api/v1/inventory.

    HTTP errors are raised as the same domain exceptions the server maps
    them from; transport failures become StoreError.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        api_prefix: str = settings.API_V1_PREFIX,
        timeout: float = 10.0,
    ):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url or settings.BACKEND_URL, timeout=timeout)
        self.prefix = f"{api_prefix.rstrip('/')}/inventory"

    async def __aenter__(self) -> "InventoryApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def _url(self, name: Optional[str] = None, action: Optional[str] = None) -> str:
        url = f"{self.prefix}/"
        if name is not None:
            url += quote(name, safe="")
            if action:
                url += f"/{action}"
        return url

    async def _request(self, method: str, url: str, name: str = "", **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Inventory API request %s %s failed: %s", method, url, e)
            raise StoreError(f"Inventory API request failed: {e}") from e

        if response.status_code >= 400:
            raise self._error_from_response(response, name)
        return response

    def _error_from_response(self, response: httpx.Response, name: str) -> InventoryError:
        try:
            detail = response.json().get("detail", response.text)
        except ValueError:
            detail = response.text
        detail = str(detail)

        if response.status_code in (400, 422):
            return ValidationError(detail)
        if response.status_code == 404:
            return ItemNotFoundError(name, detail)
        if response.status_code == 409:
            return ItemAlreadyExistsError(name, detail)
        return StoreError(f"Inventory API error {response.status_code}: {detail}")

    @staticmethod
    def _image_fields(photo: Optional[ImagePayload], photo_base64: Optional[str]):
        data = {}
        files = None
        if photo is not None:
            files = {"photo": (photo.filename, photo.data, photo.content_type or "application/octet-stream")}
        elif photo_base64:
            data["photo_base64"] = photo_base64
        return data, files

    async def list_items(self, query: Optional[str] = None) -> List[InventoryItemResponseDTO]:
        """Get all inventory items, optionally filtered server-side"""
        params = {"q": query} if query else None
        response = await self._request("GET", self._url(), params=params)
        return [InventoryItemResponseDTO.model_validate(item) for item in response.json()]

    async def get_item(self, name: str) -> InventoryItemResponseDTO:
        response = await self._request("GET", self._url(name), name=name)
        return InventoryItemResponseDTO.model_validate(response.json())

    async def add_item(
        self,
        name: str,
        quantity: int = 1,
        photo: Optional[ImagePayload] = None,
        photo_base64: Optional[str] = None,
    ) -> InventoryItemResponseDTO:
        data, files = self._image_fields(photo, photo_base64)
        data.update({"name": name, "quantity": str(quantity)})
        response = await self._request("POST", self._url(), name=name, data=data, files=files)
        return InventoryItemResponseDTO.model_validate(response.json())

    async def increment_item(self, name: str) -> QuantityChangeResponseDTO:
        response = await self._request("POST", self._url(name, "increment"), name=name)
        return QuantityChangeResponseDTO.model_validate(response.json())

    async def decrement_item(self, name: str) -> QuantityChangeResponseDTO:
        response = await self._request("POST", self._url(name, "decrement"), name=name)
        return QuantityChangeResponseDTO.model_validate(response.json())

    async def update_item(
        self,
        name: str,
        new_name: str,
        quantity: int,
        photo: Optional[ImagePayload] = None,
        photo_base64: Optional[str] = None,
        remove_photo: bool = False,
    ) -> InventoryItemResponseDTO:
        data, files = self._image_fields(photo, photo_base64)
        data.update({"name": new_name, "quantity": str(quantity), "remove_photo": "true" if remove_photo else "false"})
        response = await self._request("PUT", self._url(name), name=new_name, data=data, files=files)
        return InventoryItemResponseDTO.model_validate(response.json())

    async def delete_item(self, name: str) -> None:
        await self._request("DELETE", self._url(name), name=name)
