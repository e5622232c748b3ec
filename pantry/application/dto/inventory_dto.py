"""Inventory DTOs"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class InventoryItemCreateDTO(BaseModel):
    """DTO for adding an inventory item"""
    name: str
    quantity: int = 1


class InventoryItemUpdateDTO(BaseModel):
    """DTO for editing an inventory item"""
    name: str
    quantity: int
    remove_image: bool = False


class InventoryItemResponseDTO(BaseModel):
    """DTO for inventory item response"""
    name: str
    quantity: int
    image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class QuantityChangeResponseDTO(BaseModel):
    """DTO for increment/decrement responses"""
    name: str
    quantity: int
    removed: bool = False
    item: Optional[InventoryItemResponseDTO] = None
