"""SQLAlchemy database models"""
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text

from pantry.infrastructure.database.base import Base


class InventoryDocumentModel(Base):
    """One row per inventory item, keyed by normalized name"""
    __tablename__ = "inventory"

    key = Column(String(255), primary_key=True)
    quantity = Column(Integer, nullable=False)
    image_url = Column(Text, nullable=True)
    image_path = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
