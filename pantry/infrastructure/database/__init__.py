# Database
from pantry.infrastructure.database.base import Base, create_db_engine, create_session_factory, init_db
from pantry.infrastructure.database.models import InventoryDocumentModel

__all__ = ["Base", "create_db_engine", "create_session_factory", "init_db", "InventoryDocumentModel"]
