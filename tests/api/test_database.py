"""
Unit tests for the book repository.
"""

from unittest.mock import AsyncMock

import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError

from library_api.database import BookNotFoundError
from library_api.models import BookCreate


class TestBookRepository:
    """Test cases for BookRepository."""

    @pytest.mark.asyncio
    async def test_create_stores_document_with_new_id(self, repository, fake_collection):
        book_id = await repository.create_book(
            BookCreate(title="Go 101", authors=["A. Author"], pageCount=100)
        )

        stored = fake_collection.documents[0]
        assert stored["_id"] == ObjectId(book_id)
        assert stored["title"] == "Go 101"
        assert stored["pageCount"] == 100
        assert "isbn" not in stored

    @pytest.mark.asyncio
    async def test_get_book_by_title(self, repository):
        book_id = await repository.create_book(BookCreate(title="Dune"))

        book = await repository.get_book_by_title("Dune")

        assert book.id == book_id
        assert book.title == "Dune"

    @pytest.mark.asyncio
    async def test_get_book_by_title_is_exact_match(self, repository):
        await repository.create_book(BookCreate(title="Dune"))

        with pytest.raises(BookNotFoundError) as exc_info:
            await repository.get_book_by_title("dune")

        assert exc_info.value.title == "dune"

    @pytest.mark.asyncio
    async def test_find_raw_renders_id_as_string(self, repository):
        book_id = await repository.create_book(BookCreate(title="Dune"))

        document = await repository.find_raw_by_title("Dune")

        assert document == {"_id": book_id, "title": "Dune"}

    @pytest.mark.asyncio
    async def test_list_books_matches_inserted(self, repository):
        titles = [f"Book {n}" for n in range(5)]
        ids = [await repository.create_book(BookCreate(title=t)) for t in titles]

        books = await repository.list_books()

        assert len(books) == 5
        assert [(b.id, b.title) for b in books] == list(zip(ids, titles))

    @pytest.mark.asyncio
    async def test_delete_book_by_title(self, repository, fake_collection):
        await repository.create_book(BookCreate(title="Dune"))

        await repository.delete_book_by_title("Dune")

        assert fake_collection.documents == []
        with pytest.raises(BookNotFoundError):
            await repository.get_book_by_title("Dune")

    @pytest.mark.asyncio
    async def test_delete_missing_book(self, repository, fake_collection):
        await repository.create_book(BookCreate(title="Dune"))

        with pytest.raises(BookNotFoundError):
            await repository.delete_book_by_title("Emma")

        assert len(fake_collection.documents) == 1

    @pytest.mark.asyncio
    async def test_driver_errors_propagate(self, repository, fake_collection):
        fake_collection.insert_one = AsyncMock(side_effect=PyMongoError("boom"))

        with pytest.raises(PyMongoError):
            await repository.create_book(BookCreate(title="Dune"))

    @pytest.mark.asyncio
    async def test_health_check(self, repository, fake_collection):
        await repository.create_book(BookCreate(title="Dune"))

        health = await repository.health_check()

        assert health == {"status": "healthy", "books_count": 1}
        fake_collection.database.command.assert_awaited_once_with("ping")

    @pytest.mark.asyncio
    async def test_health_check_unhealthy(self, repository, fake_collection):
        fake_collection.database.command = AsyncMock(side_effect=PyMongoError("down"))

        health = await repository.health_check()

        assert health["status"] == "unhealthy"
        assert health["error"] == "down"
