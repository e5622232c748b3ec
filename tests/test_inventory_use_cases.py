import logging

import pytest

from conftest import PNG_BYTES, UPLOADS_BASE_URL
from pantry.application.dto.inventory_dto import InventoryItemCreateDTO, InventoryItemUpdateDTO
from pantry.application.use_cases.inventory_use_cases import InventoryUseCases
from pantry.domain.entities.inventory import ImagePayload, InventoryItem
from pantry.domain.exceptions import ItemAlreadyExistsError, ItemNotFoundError, StoreError, ValidationError
from pantry.domain.repositories.inventory_repository import DocumentStore
from pantry.infrastructure.repositories.inventory_repository_memory import InventoryRepositoryMemory
from pantry.infrastructure.storage import LocalBlobStore


def png(filename="apple.png"):
    return ImagePayload(data=PNG_BYTES, filename=filename, content_type="image/png")


def blob_files(blob_store):
    images = blob_store.upload_dir / "images"
    if not images.exists():
        return []
    return sorted(p.name for p in images.iterdir())


class UntouchableStore(DocumentStore):
    """Fails the test if any store call is made"""

    async def get(self, key):
        pytest.fail("store was called")

    async def set(self, item):
        pytest.fail("store was called")

    async def delete(self, key):
        pytest.fail("store was called")

    async def list_all(self):
        pytest.fail("store was called")

    async def increment(self, key, delta, create_with=None):
        pytest.fail("store was called")

    async def rekey(self, old_key, item):
        pytest.fail("store was called")


class UndeletableBlobStore(LocalBlobStore):
    """Uploads work; every delete fails"""

    async def delete(self, path):
        raise StoreError(f"cannot delete {path}")


class FailingWriteStore(InventoryRepositoryMemory):
    """Reads work; quantity changes and renames fail"""

    async def increment(self, key, delta, create_with=None):
        raise StoreError("store unavailable")

    async def rekey(self, old_key, item):
        raise StoreError("store unavailable")


@pytest.fixture
def undeletable_blob_store(tmp_path):
    return UndeletableBlobStore(str(tmp_path / "uploads"), UPLOADS_BASE_URL)


async def test_add_then_load_yields_one_item(use_cases):
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="banana", quantity=3))

    items = await use_cases.load_inventory()

    assert [(i.name, i.quantity) for i in items] == [("banana", 3)]


async def test_add_normalizes_name(use_cases):
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="  Apple ", quantity=1))
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="APPLE", quantity=2))

    items = await use_cases.load_inventory()

    assert [(i.name, i.quantity) for i in items] == [("apple", 3)]


async def test_add_existing_item_increments_by_quantity(use_cases):
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="banana", quantity=3))
    result = await use_cases.add_inventory_item(InventoryItemCreateDTO(name="banana", quantity=2))

    assert result.quantity == 5


async def test_add_with_image_stores_blob(use_cases, blob_store):
    result = await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=1), png())

    assert result.image_url.startswith(blob_store.base_url)
    assert len(blob_files(blob_store)) == 1


async def test_add_to_existing_item_discards_new_image(use_cases, blob_store):
    first = await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=1), png())
    second = await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=1), png("other.png"))

    assert second.image_url == first.image_url
    assert second.quantity == 2
    assert len(blob_files(blob_store)) == 1


@pytest.mark.parametrize(
    "name, quantity",
    [("", 1), ("   ", 1), ("apple", 0), ("apple", -2)],
)
async def test_invalid_add_is_rejected_before_any_store_call(blob_store, name, quantity):
    use_cases = InventoryUseCases(UntouchableStore(), blob_store)

    with pytest.raises(ValidationError):
        await use_cases.add_inventory_item(InventoryItemCreateDTO(name=name, quantity=quantity), png())

    assert blob_files(blob_store) == []


async def test_invalid_image_is_rejected_before_any_store_call(blob_store):
    use_cases = InventoryUseCases(UntouchableStore(), blob_store)

    with pytest.raises(ValidationError):
        await use_cases.add_inventory_item(
            InventoryItemCreateDTO(name="apple", quantity=1),
            ImagePayload(data=b"text", filename="notes.txt"),
        )


async def test_increment_then_decrement_restores_quantity(use_cases):
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=2))

    up = await use_cases.increment_inventory_item("Apple")
    down = await use_cases.decrement_inventory_item("apple")

    assert up.quantity == 3
    assert down.quantity == 2
    assert not down.removed


async def test_increment_missing_item_creates_it(use_cases):
    result = await use_cases.increment_inventory_item("Kiwi")

    assert result.name == "kiwi"
    assert result.quantity == 1
    assert [i.name for i in await use_cases.load_inventory()] == ["kiwi"]


async def test_decrement_last_unit_removes_item_and_image(use_cases, blob_store):
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=1), png())

    result = await use_cases.decrement_inventory_item("apple")

    assert result.removed
    assert result.quantity == 0
    assert result.item is None
    assert await use_cases.load_inventory() == []
    assert blob_files(blob_store) == []


async def test_decrement_missing_item_raises_not_found(use_cases):
    with pytest.raises(ItemNotFoundError):
        await use_cases.decrement_inventory_item("ghost")


async def test_quantity_never_goes_negative(use_cases):
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=1))
    await use_cases.decrement_inventory_item("apple")

    with pytest.raises(ItemNotFoundError):
        await use_cases.decrement_inventory_item("apple")
    assert await use_cases.load_inventory() == []


async def test_delete_removes_document_and_blob(use_cases, blob_store):
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=4), png())
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="pear", quantity=1))

    await use_cases.delete_inventory_item(" APPLE ")

    assert [i.name for i in await use_cases.load_inventory()] == ["pear"]
    assert blob_files(blob_store) == []


async def test_delete_missing_item_raises_not_found(use_cases):
    with pytest.raises(ItemNotFoundError):
        await use_cases.delete_inventory_item("ghost")


async def test_delete_legacy_item_derives_blob_path_from_url(use_cases, document_store, blob_store):
    url = await blob_store.upload("images/old photo.png1234", PNG_BYTES)
    await document_store.set(InventoryItem(name="apple", quantity=1, image_url=url))

    await use_cases.delete_inventory_item("apple")

    assert blob_files(blob_store) == []
    assert await document_store.get("apple") is None


async def test_delete_item_with_foreign_url_leaves_blobs_alone(use_cases, document_store, blob_store):
    await blob_store.upload("images/keep.png1234", PNG_BYTES)
    await document_store.set(InventoryItem(name="apple", quantity=1, image_url="https://cdn.example.com/a.png"))

    await use_cases.delete_inventory_item("apple")

    assert blob_files(blob_store) == ["keep.png1234"]
    assert await document_store.get("apple") is None


async def test_update_without_changes_is_a_no_op(use_cases, document_store):
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=2))
    before = await document_store.get("apple")

    await use_cases.update_inventory_item("apple", InventoryItemUpdateDTO(name=" Apple", quantity=2))

    assert (await document_store.get("apple")).version == before.version


async def test_update_renames_and_requantifies(use_cases, blob_store):
    added = await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=2), png())

    result = await use_cases.update_inventory_item("apple", InventoryItemUpdateDTO(name="Green Apple", quantity=7))

    assert result.name == "green apple"
    assert result.quantity == 7
    assert result.image_url == added.image_url
    assert [(i.name, i.quantity) for i in await use_cases.load_inventory()] == [("green apple", 7)]
    assert len(blob_files(blob_store)) == 1


async def test_update_onto_existing_name_is_rejected(use_cases, blob_store):
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=2))
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="pear", quantity=3))

    with pytest.raises(ItemAlreadyExistsError):
        await use_cases.update_inventory_item("apple", InventoryItemUpdateDTO(name="PEAR", quantity=1), png())

    assert [(i.name, i.quantity) for i in await use_cases.load_inventory()] == [("apple", 2), ("pear", 3)]
    assert blob_files(blob_store) == []


async def test_update_with_new_image_deletes_old_blob(use_cases, blob_store):
    first = await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=1), png("first.png"))

    result = await use_cases.update_inventory_item(
        "apple", InventoryItemUpdateDTO(name="apple", quantity=1), png("second.png")
    )

    assert result.image_url != first.image_url
    files = blob_files(blob_store)
    assert len(files) == 1
    assert files[0].startswith("second.png")


async def test_update_remove_image(use_cases, blob_store):
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=1), png())

    result = await use_cases.update_inventory_item(
        "apple", InventoryItemUpdateDTO(name="apple", quantity=1, remove_image=True)
    )

    assert result.image_url is None
    assert blob_files(blob_store) == []


async def test_update_missing_item_raises_not_found(use_cases):
    with pytest.raises(ItemNotFoundError):
        await use_cases.update_inventory_item("ghost", InventoryItemUpdateDTO(name="ghost", quantity=1))


@pytest.mark.parametrize("new_name, quantity", [("", 1), ("  ", 3), ("pear", 0)])
async def test_invalid_update_is_rejected_before_any_store_call(blob_store, new_name, quantity):
    use_cases = InventoryUseCases(UntouchableStore(), blob_store)

    with pytest.raises(ValidationError):
        await use_cases.update_inventory_item("apple", InventoryItemUpdateDTO(name=new_name, quantity=quantity))


async def test_search_filters_loaded_items(use_cases):
    for name in ["apple", "banana", "grape"]:
        await use_cases.add_inventory_item(InventoryItemCreateDTO(name=name, quantity=1))

    assert [i.name for i in await use_cases.search_inventory("AN")] == ["banana"]
    assert [i.name for i in await use_cases.search_inventory("")] == ["apple", "banana", "grape"]


async def test_get_inventory_item(use_cases):
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=2))

    assert (await use_cases.get_inventory_item("APPLE")).quantity == 2
    with pytest.raises(ItemNotFoundError):
        await use_cases.get_inventory_item("pear")


async def test_failed_add_discards_uploaded_blob(blob_store):
    use_cases = InventoryUseCases(FailingWriteStore(), blob_store)

    with pytest.raises(StoreError):
        await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=1), png())

    assert blob_files(blob_store) == []


async def test_failed_rename_keeps_item_and_discards_uploaded_blob(blob_store):
    document_store = FailingWriteStore()
    use_cases = InventoryUseCases(document_store, blob_store)
    url = await blob_store.upload("images/first.png1234", PNG_BYTES)
    await document_store.set(
        InventoryItem(name="apple", quantity=2, image_url=url, image_path="images/first.png1234")
    )

    with pytest.raises(StoreError):
        await use_cases.update_inventory_item(
            "apple", InventoryItemUpdateDTO(name="pear", quantity=2), png("second.png")
        )

    item = await document_store.get("apple")
    assert (item.quantity, item.image_path) == (2, "images/first.png1234")
    assert blob_files(blob_store) == ["first.png1234"]


async def test_delete_with_failing_blob_delete_keeps_document(memory_store, undeletable_blob_store):
    use_cases = InventoryUseCases(memory_store, undeletable_blob_store)
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=1), png())

    with pytest.raises(StoreError):
        await use_cases.delete_inventory_item("apple")

    assert (await memory_store.get("apple")).quantity == 1
    assert len(blob_files(undeletable_blob_store)) == 1


async def test_update_survives_failing_old_blob_delete(memory_store, undeletable_blob_store, caplog):
    use_cases = InventoryUseCases(memory_store, undeletable_blob_store)
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=1), png("first.png"))

    with caplog.at_level(logging.WARNING):
        result = await use_cases.update_inventory_item(
            "apple", InventoryItemUpdateDTO(name="apple", quantity=1), png("second.png")
        )

    assert "second.png" in result.image_url
    assert (await memory_store.get("apple")).image_path.startswith("images/second.png")
    assert len(blob_files(undeletable_blob_store)) == 2
    assert "Orphaned blob images/first.png" in caplog.text


async def test_decrement_to_zero_survives_failing_blob_delete(memory_store, undeletable_blob_store, caplog):
    use_cases = InventoryUseCases(memory_store, undeletable_blob_store)
    await use_cases.add_inventory_item(InventoryItemCreateDTO(name="apple", quantity=1), png())

    with caplog.at_level(logging.WARNING):
        result = await use_cases.decrement_inventory_item("apple")

    assert result.removed
    assert await memory_store.get("apple") is None
    assert len(blob_files(undeletable_blob_store)) == 1
    assert "Orphaned blob images/apple.png" in caplog.text
