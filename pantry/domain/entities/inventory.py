"""Inventory domain entity"""
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from pantry.domain.exceptions import ValidationError


def normalize_item_name(name: Optional[str]) -> str:
    """Trim and lower-case an item name so it can be used as a store key.

    Raises ValidationError when nothing is left after trimming.
    """
    normalized = (name or "").strip().lower()
    if not normalized:
        raise ValidationError("Item name cannot be empty")
    return normalized


def validate_quantity(quantity: int) -> int:
    """Reject quantities that could never be persisted"""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be an integer")
    if quantity < 1:
        raise ValidationError("Quantity must be greater than zero")
    return quantity


@dataclass
class StoredImage:
    """Image uploaded to the blob store"""
    path: str
    url: str


@dataclass
class ImagePayload:
    """Image bytes waiting to be uploaded (file upload or camera capture)"""
    data: bytes
    filename: str
    content_type: Optional[str] = None


@dataclass
class InventoryItem:
    """Inventory item domain entity

    ``name`` is the normalized document key.
    """
    name: str
    quantity: int
    image_url: Optional[str] = None
    image_path: Optional[str] = None
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = datetime.utcnow()
        if self.updated_at is None:
            self.updated_at = self.created_at

    @property
    def has_image(self) -> bool:
        return bool(self.image_url or self.image_path)


@dataclass
class QuantityChange:
    """Outcome of an atomic quantity adjustment"""
    previous: Optional[InventoryItem]
    current: Optional[InventoryItem]

    @property
    def created(self) -> bool:
        return self.previous is None and self.current is not None

    @property
    def removed(self) -> bool:
        return self.current is None


def filter_items(items: Iterable, query: Optional[str]) -> List:
    """Case-insensitive substring match on item names.

    An empty query returns every item. Source order is kept. Works on
    anything with a ``name`` attribute or a ``"name"`` key.
    """
    items = list(items)
    needle = (query or "").strip().lower()
    if not needle:
        return items

    def _name(item) -> str:
        if isinstance(item, dict):
            return item.get("name", "")
        return getattr(item, "name", "")

    return [item for item in items if needle in _name(item).lower()]
