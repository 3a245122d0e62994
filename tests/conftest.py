"""
Pytest configuration and shared fixtures.
"""

import copy
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from library_api.config import APIConfig
from library_api.database import BookRepository
from library_api.main import create_app


def _matches(document, query):
    return all(document.get(key) == value for key, value in query.items())


class FakeCursor:
    """Async iterator over a snapshot of documents, like a motor cursor."""

    def __init__(self, documents):
        self._documents = iter(documents)

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            return next(self._documents)
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    """In-memory stand-in for the motor collection calls the repository makes."""

    def __init__(self):
        self.documents = []
        self.database = SimpleNamespace(command=AsyncMock(return_value={"ok": 1.0}))

    async def insert_one(self, document):
        self.documents.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    async def find_one(self, query):
        for document in self.documents:
            if _matches(document, query):
                return copy.deepcopy(document)
        return None

    def find(self, query):
        return FakeCursor(
            [copy.deepcopy(d) for d in self.documents if _matches(d, query)]
        )

    async def delete_one(self, query):
        for index, document in enumerate(self.documents):
            if _matches(document, query):
                del self.documents[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def count_documents(self, query):
        return len([d for d in self.documents if _matches(d, query)])


@pytest.fixture
def settings():
    """Settings for an app that never touches real secrets."""
    return APIConfig(secrets_mode="env", debug=True)


@pytest.fixture
def fake_collection():
    return FakeCollection()


@pytest.fixture
def repository(fake_collection):
    return BookRepository(fake_collection)


@pytest.fixture
def app(settings, repository):
    """Application with its repository bound, bypassing the lifespan hook."""
    application = create_app(settings, connection_uri="mongodb://unused")
    application.state.repository = repository
    return application


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def sample_book_payload():
    """Sample create-book request body."""
    return {
        "title": "Go 101",
        "pageCount": 320,
        "longDescription": "A book about Go.",
        "isbn": "978-0000000000",
        "authors": ["A. Author", "B. Author"],
        "categories": ["Programming"],
        "status": "PUBLISH",
    }
