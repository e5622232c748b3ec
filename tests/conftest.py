import httpx
import pytest

from pantry.application.use_cases.inventory_use_cases import InventoryUseCases
from pantry.infrastructure.config.settings import Settings
from pantry.infrastructure.database.base import create_db_engine, create_session_factory, init_db
from pantry.infrastructure.repositories.inventory_repository_db import InventoryRepositoryDB
from pantry.infrastructure.repositories.inventory_repository_memory import InventoryRepositoryMemory
from pantry.infrastructure.storage import LocalBlobStore
from pantry.main import create_app

PUBLIC_BASE_URL = "http://testserver"
UPLOADS_BASE_URL = f"{PUBLIC_BASE_URL}/uploads/"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def sql_engine():
    engine = create_db_engine(Settings(DATABASE_URL="sqlite://"))
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_store(sql_engine):
    return InventoryRepositoryDB(create_session_factory(sql_engine), engine=sql_engine)


@pytest.fixture
def memory_store():
    return InventoryRepositoryMemory()


@pytest.fixture(params=["memory", "sql"])
def document_store(request):
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(str(tmp_path / "uploads"), UPLOADS_BASE_URL)


@pytest.fixture
def use_cases(document_store, blob_store):
    return InventoryUseCases(document_store, blob_store)


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        DOCUMENT_STORE="memory",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        PUBLIC_BASE_URL=PUBLIC_BASE_URL,
    )


@pytest.fixture
def app(test_settings, document_store, blob_store):
    return create_app(settings=test_settings, document_store=document_store, blob_store=blob_store)


@pytest.fixture
async def http_client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url=PUBLIC_BASE_URL) as client:
        yield client
