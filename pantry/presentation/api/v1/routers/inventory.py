"""Inventory API router"""
from fastapi import APIRouter, Depends, status, UploadFile, File, Form, Query
from typing import List, Optional
from pantry.application.dto.inventory_dto import (
    InventoryItemCreateDTO,
    InventoryItemUpdateDTO,
    InventoryItemResponseDTO,
    QuantityChangeResponseDTO,
)
from pantry.presentation.api.v1.dependencies import get_inventory_use_cases, inventory_http_error
from pantry.application.use_cases.inventory_use_cases import InventoryUseCases
from pantry.domain.entities.inventory import ImagePayload
from pantry.domain.exceptions import InventoryError
from pantry.infrastructure.storage import decode_base64_image, read_uploaded_file

router = APIRouter(prefix="/inventory", tags=["inventory"], redirect_slashes=False)


async def _read_image(photo: Optional[UploadFile], photo_base64: Optional[str]) -> Optional[ImagePayload]:
    """Photo from a file upload, or from a camera capture sent as base64"""
    if photo and photo.filename:
        return await read_uploaded_file(photo)
    if photo_base64 and photo_base64.strip():
        return decode_base64_image(photo_base64)
    return None


@router.get("/", response_model=List[InventoryItemResponseDTO])
async def get_inventory_items(
    q: Optional[str] = Query(None, description="Case-insensitive name filter"),
    use_cases: InventoryUseCases = Depends(get_inventory_use_cases),
):
    """Get all inventory items, optionally filtered by name"""
    try:
        return await use_cases.search_inventory(q)
    except InventoryError as e:
        raise inventory_http_error(e)


@router.post("/", response_model=InventoryItemResponseDTO, status_code=status.HTTP_201_CREATED)
async def add_inventory_item(
    name: str = Form(""),
    quantity: int = Form(1),
    photo: Optional[UploadFile] = File(None),
    photo_base64: Optional[str] = Form(None),
    use_cases: InventoryUseCases = Depends(get_inventory_use_cases),
):
    """Add an item. Adding an existing name increases its quantity."""
    try:
        image = await _read_image(photo, photo_base64)
        item_data = InventoryItemCreateDTO(name=name, quantity=quantity)
        return await use_cases.add_inventory_item(item_data, image)
    except InventoryError as e:
        raise inventory_http_error(e)


# Names may contain "/"; the action routes are registered before the bare
# name routes.
@router.post("/{item_name:path}/increment", response_model=QuantityChangeResponseDTO)
async def increment_inventory_item(
    item_name: str,
    use_cases: InventoryUseCases = Depends(get_inventory_use_cases),
):
    """Increase quantity by one"""
    try:
        return await use_cases.increment_inventory_item(item_name)
    except InventoryError as e:
        raise inventory_http_error(e)


@router.post("/{item_name:path}/decrement", response_model=QuantityChangeResponseDTO)
async def decrement_inventory_item(
    item_name: str,
    use_cases: InventoryUseCases = Depends(get_inventory_use_cases),
):
    """Decrease quantity by one. The last unit deletes the item."""
    try:
        return await use_cases.decrement_inventory_item(item_name)
    except InventoryError as e:
        raise inventory_http_error(e)


@router.get("/{item_name:path}", response_model=InventoryItemResponseDTO)
async def get_inventory_item(
    item_name: str,
    use_cases: InventoryUseCases = Depends(get_inventory_use_cases),
):
    """Get inventory item by name"""
    try:
        return await use_cases.get_inventory_item(item_name)
    except InventoryError as e:
        raise inventory_http_error(e)


@router.put("/{item_name:path}", response_model=InventoryItemResponseDTO)
async def update_inventory_item(
    item_name: str,
    name: str = Form(""),
    quantity: int = Form(...),
    photo: Optional[UploadFile] = File(None),
    photo_base64: Optional[str] = Form(None),
    remove_photo: bool = Form(False),
    use_cases: InventoryUseCases = Depends(get_inventory_use_cases),
):
    """Edit an item's name, quantity or photo"""
    try:
        image = await _read_image(photo, photo_base64)
        item_data = InventoryItemUpdateDTO(name=name, quantity=quantity, remove_image=remove_photo)
        return await use_cases.update_inventory_item(item_name, item_data, image)
    except InventoryError as e:
        raise inventory_http_error(e)


@router.delete("/{item_name:path}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_inventory_item(
    item_name: str,
    use_cases: InventoryUseCases = Depends(get_inventory_use_cases),
):
    """Delete inventory item and its photo"""
    try:
        await use_cases.delete_inventory_item(item_name)
    except InventoryError as e:
        raise inventory_http_error(e)
