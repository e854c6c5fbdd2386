# tests/conftest.py
import logging
import os
from typing import Any, Dict, List, Optional

import pytest
from pydantic import BaseModel, Field
from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, PyMongoError

from document_references.base.context import ReferenceContext
from document_references.base.descriptor import (DBRefOptions,
                                                 DocumentReference,
                                                 PropertyDescriptor)
from document_references.base.interfaces import ReferenceLoader
from document_references.memory.base import InMemoryReferenceLoader

# Silence verbose loggers
logging.getLogger("pymongo").setLevel(logging.ERROR)


# --- Logger Fixture ---


@pytest.fixture(scope="session")
def logger():
    """Create a test logger."""
    _logger = logging.getLogger("test_reference_logger")
    if not _logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        handler.setLevel(logging.DEBUG)
        _logger.addHandler(handler)
        _logger.setLevel(logging.DEBUG)
        _logger.propagate = False
    return logging.LoggerAdapter(_logger, {})


# --- Test Entities ---


class Publisher(BaseModel):
    """Target entity of most reference tests."""

    id: Optional[Any] = None
    acronym: Optional[str] = None
    name: str = ""
    tags: List[str] = Field(default_factory=list)


class Book(BaseModel):
    """Target entity of multi-valued reference tests."""

    id: Optional[Any] = None
    isbn: Optional[str] = None
    title: str = ""


# --- Fake Loader ---


class RecordingLoader(ReferenceLoader):
    """Returns canned documents and records every call it receives."""

    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None):
        self.documents = list(documents or [])
        self.calls: List[tuple] = []

    def fetch_one(self, context: ReferenceContext, filter, logger) -> Optional[Dict[str, Any]]:
        self.calls.append(("one", context, filter))
        return self.documents[0] if self.documents else None

    def fetch_many(self, context: ReferenceContext, filter, logger) -> List[Dict[str, Any]]:
        self.calls.append(("many", context, filter))
        return list(self.documents)


@pytest.fixture
def recording_loader_factory():
    def _create(documents=None):
        return RecordingLoader(documents)

    return _create


# --- Descriptors ---


@pytest.fixture
def publisher_by_acronym() -> PropertyDescriptor:
    """Single document reference looked up by acronym."""
    return PropertyDescriptor(
        name="publisher",
        target_type=Publisher,
        target_collection="publisher",
        document_reference=DocumentReference(lookup="{ 'acronym' : ?#{#target} }"),
    )


@pytest.fixture
def lazy_publisher_by_acronym() -> PropertyDescriptor:
    return PropertyDescriptor(
        name="publisher",
        target_type=Publisher,
        target_collection="publisher",
        document_reference=DocumentReference(
            lookup="{ 'acronym' : ?#{#target} }", lazy=True
        ),
    )


@pytest.fixture
def books_by_isbn() -> PropertyDescriptor:
    """Multi-valued document reference looked up by isbn."""
    return PropertyDescriptor(
        name="books",
        target_type=Book,
        target_collection="book",
        collection_like=True,
        document_reference=DocumentReference(lookup="{ 'isbn' : ?#{#target} }"),
    )


@pytest.fixture
def legacy_publisher() -> PropertyDescriptor:
    """Plain identifier reference."""
    return PropertyDescriptor(
        name="publisher",
        target_type=Publisher,
        target_collection="publisher",
        db_ref=DBRefOptions(),
    )


@pytest.fixture
def memory_loader() -> InMemoryReferenceLoader:
    """In-memory store seeded with publishers and books."""
    loader = InMemoryReferenceLoader(database_name="library")
    loader.insert_many(
        "publisher",
        [
            {"_id": "p1", "acronym": "DVA", "name": "dpunkt.verlag"},
            {"_id": "p2", "acronym": "ORA", "name": "O'Reilly"},
        ],
    )
    loader.insert_many(
        "book",
        [
            {"_id": "b1", "isbn": "isbn-1", "title": "First"},
            {"_id": "b2", "isbn": "isbn-2", "title": "Second"},
            {"_id": "b3", "isbn": "isbn-3", "title": "Third"},
        ],
    )
    loader.insert(
        "archived_publisher",
        {"_id": "p9", "acronym": "OLD", "name": "Archived"},
        database="archive",
    )
    return loader


# --- MongoDB ---

TEST_MONGO_DB_NAME = "pytest_document_references_db"
MONGO_URI = os.getenv("TEST_MONGO_URI", "mongodb://localhost:27017")


def is_mongodb_available():
    """Check if MongoDB is available (basic check)."""
    try:
        client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=1000)
        client.admin.command("ismaster")
        logging.info(f"MongoDB found and responsive at {MONGO_URI}")
        client.close()
        return True
    except ConnectionFailure:
        logging.warning(
            f"MongoDB not found or not responsive at {MONGO_URI}. "
            "Skipping MongoDB tests."
        )
        return False
    except PyMongoError as e:
        logging.warning(
            f"Error checking MongoDB connection at {MONGO_URI}: {e}. "
            "Skipping MongoDB tests."
        )
        return False


@pytest.fixture(scope="session")
def mongodb_available():
    return is_mongodb_available()


@pytest.fixture
def mongo_client(mongodb_available):
    """Provides a real pymongo client with a clean test database."""
    if not mongodb_available:
        pytest.skip("MongoDB not available or connection failed.")

    client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=1000)
    client.drop_database(TEST_MONGO_DB_NAME)
    try:
        yield client
    finally:
        client.drop_database(TEST_MONGO_DB_NAME)
        client.close()
        logging.debug("MongoDB client closed for test function scope.")
