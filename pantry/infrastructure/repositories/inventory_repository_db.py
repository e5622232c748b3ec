"""SQL implementation of the inventory DocumentStore"""
import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Iterator, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from pantry.domain.entities.inventory import InventoryItem, QuantityChange
from pantry.domain.exceptions import ItemAlreadyExistsError, ItemNotFoundError, StoreError
from pantry.domain.repositories.inventory_repository import DocumentStore
from pantry.infrastructure.database.models import InventoryDocumentModel

logger = logging.getLogger(__name__)


class InventoryRepositoryDB(DocumentStore):
    """SQL implementation of DocumentStore.

    Every call runs in its own session and transaction. Quantity changes are
    applied with a single ``UPDATE ... SET quantity = quantity + :delta`` so
    concurrent increments never lose an update.
    """

    # An insert can lose a race against a concurrent insert of the same key
    MAX_CREATE_ATTEMPTS = 3

    def __init__(self, session_factory: sessionmaker, engine: Optional[Engine] = None):
        self.session_factory = session_factory
        self.engine = engine

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Document store failed to %s: %s", action, e)
            raise StoreError(f"Document store failed to {action}") from e
        finally:
            db.close()

    def _model_to_entity(self, model: InventoryDocumentModel) -> InventoryItem:
        """Convert InventoryDocumentModel to InventoryItem entity"""
        return InventoryItem(
            name=model.key,
            quantity=model.quantity,
            image_url=model.image_url,
            image_path=model.image_path,
            version=model.version,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _entity_to_model(self, item: InventoryItem) -> InventoryDocumentModel:
        now = datetime.utcnow()
        return InventoryDocumentModel(
            key=item.name,
            quantity=item.quantity,
            image_url=item.image_url,
            image_path=item.image_path,
            version=1,
            created_at=now,
            updated_at=now,
        )

    async def get(self, key: str) -> Optional[InventoryItem]:
        """Get inventory document by key"""
        with self._session(f"read '{key}'") as db:
            model = db.get(InventoryDocumentModel, key)
            if not model:
                return None
            return self._model_to_entity(model)

    async def set(self, item: InventoryItem) -> InventoryItem:
        """Create or overwrite inventory document"""
        with self._session(f"write '{item.name}'") as db:
            model = db.get(InventoryDocumentModel, item.name, with_for_update=True)
            if model is None:
                model = self._entity_to_model(item)
                db.add(model)
            else:
                model.quantity = item.quantity
                model.image_url = item.image_url
                model.image_path = item.image_path
                model.version = model.version + 1
                model.updated_at = datetime.utcnow()

            db.commit()
            return self._model_to_entity(model)

    async def delete(self, key: str) -> bool:
        """Delete inventory document"""
        with self._session(f"delete '{key}'") as db:
            result = db.execute(delete(InventoryDocumentModel).where(InventoryDocumentModel.key == key))
            db.commit()
            return result.rowcount > 0

    async def list_all(self) -> List[InventoryItem]:
        """Get all inventory documents"""
        with self._session("list inventory") as db:
            models = db.execute(
                select(InventoryDocumentModel).order_by(InventoryDocumentModel.key)
            ).scalars().all()
            return [self._model_to_entity(model) for model in models]

    async def increment(
        self, key: str, delta: int, create_with: Optional[InventoryItem] = None
    ) -> QuantityChange:
        """Atomically adjust the quantity of an inventory document"""
        with self._session(f"adjust '{key}'") as db:
            for _ in range(self.MAX_CREATE_ATTEMPTS):
                result = db.execute(
                    update(InventoryDocumentModel)
                    .where(InventoryDocumentModel.key == key)
                    .values(
                        quantity=InventoryDocumentModel.quantity + delta,
                        version=InventoryDocumentModel.version + 1,
                        updated_at=datetime.utcnow(),
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount > 0:
                    return self._finish_increment(db, key, delta)

                db.rollback()
                if create_with is None:
                    raise ItemNotFoundError(key)

                model = self._entity_to_model(replace(create_with, name=key))
                db.add(model)
                try:
                    db.commit()
                except IntegrityError:
                    # Created concurrently, retry as an update
                    db.rollback()
                    continue
                return QuantityChange(previous=None, current=self._model_to_entity(model))

        raise StoreError(f"Document store failed to adjust '{key}': too much contention")

    def _finish_increment(self, db: Session, key: str, delta: int) -> QuantityChange:
        model = db.get(InventoryDocumentModel, key, populate_existing=True)
        current = self._model_to_entity(model)
        previous = replace(current, quantity=current.quantity - delta, version=current.version - 1)

        if model.quantity < 1:
            db.delete(model)
            db.commit()
            return QuantityChange(previous=previous, current=None)

        db.commit()
        return QuantityChange(previous=previous, current=current)

    async def rekey(self, old_key: str, item: InventoryItem) -> InventoryItem:
        """Replace the document under old_key with item in one transaction"""
        with self._session(f"rename '{old_key}' to '{item.name}'") as db:
            old_model = db.get(InventoryDocumentModel, old_key, with_for_update=True)
            if old_model is None:
                raise ItemNotFoundError(old_key)

            if item.name == old_key:
                old_model.quantity = item.quantity
                old_model.image_url = item.image_url
                old_model.image_path = item.image_path
                old_model.version = old_model.version + 1
                old_model.updated_at = datetime.utcnow()
                db.commit()
                return self._model_to_entity(old_model)

            if db.get(InventoryDocumentModel, item.name) is not None:
                raise ItemAlreadyExistsError(item.name)

            db.delete(old_model)
            db.flush()
            new_model = self._entity_to_model(item)
            new_model.created_at = old_model.created_at
            new_model.version = old_model.version + 1
            db.add(new_model)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise ItemAlreadyExistsError(item.name)
            return self._model_to_entity(new_model)

    async def close(self) -> None:
        """Dispose of the engine's connection pool"""
        if self.engine is not None:
            self.engine.dispose()
