# Client
from pantry.client.api_client import InventoryApiClient
from pantry.client.view import InventoryView

__all__ = ["InventoryApiClient", "InventoryView"]
