import os
import tempfile

# Settings are resolved once per process, so the environment is fixed before any app import
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="academic-uploads-"))
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("DB_NAME", "academic_records_test")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock

from app.services.blob_store import UploadResult

USER_ID = "user-123"


def fake_upsert(filter_doc, update, **kwargs):
    """Mimic find_one_and_update(upsert=True) returning the document after the write"""
    doc = {key: value for key, value in filter_doc.items() if not isinstance(value, dict)}
    doc.update(update.get("$setOnInsert", {}))
    doc.update(update.get("$set", {}))
    return doc


@pytest.fixture
def mock_coll():
    """Stand-in for the motor collection behind AcademicRecordManager"""
    coll = MagicMock()
    coll.find_one = AsyncMock(return_value=None)
    coll.find_one_and_update = AsyncMock(side_effect=fake_upsert)
    coll.insert_one = AsyncMock()
    return coll


@pytest.fixture
def manager(mock_coll):
    from app.services.academic_manager import AcademicRecordManager

    return AcademicRecordManager(mock_coll)


@pytest.fixture
def test_app(manager):
    from fastapi.exceptions import RequestValidationError

    from app.dependencies import get_academic_manager
    from app.middleware.error_handlers import ExceptionHandlerMiddleware, request_validation_exception_handler
    from app.routers import academic

    app = FastAPI()
    app.add_middleware(ExceptionHandlerMiddleware)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.include_router(academic.router, prefix="/api/academic")
    app.dependency_overrides[get_academic_manager] = lambda: manager
    return app


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


@pytest.fixture
def auth_headers():
    return {"X-User-Id": USER_ID}


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def blob_store():
    store = AsyncMock()
    store.upload = AsyncMock(return_value=UploadResult(
        url="https://res.cloudinary.com/demo/raw/upload/academic_documents/cert.pdf",
        public_id="academic_documents/cert",
    ))
    return store


@pytest.fixture
def upload_client(test_app, upload_dir, blob_store):
    from app.dependencies import get_blob_store, get_temp_files
    from app.services.temp_files import TempFileManager

    test_app.dependency_overrides[get_temp_files] = lambda: TempFileManager(upload_dir)
    test_app.dependency_overrides[get_blob_store] = lambda: blob_store
    return TestClient(test_app)
