"""Inventory domain errors"""
from typing import Optional


class InventoryError(Exception):
    """Base class for inventory errors"""


class ValidationError(InventoryError, ValueError):
    """Input rejected before any store call was made"""


class ItemNotFoundError(InventoryError, LookupError):
    """No document exists under the requested key"""

    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        super().__init__(message or f"Inventory item '{name}' not found")


class ItemAlreadyExistsError(InventoryError):
    """A different document already owns the requested key"""

    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        super().__init__(message or f"Inventory item '{name}' already exists")


class StoreError(InventoryError):
    """Document store or blob store call failed"""
