"""
Database service layer for the FastAPI application.
"""

from typing import Any, Dict, List

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from library_api.models import Book, BookCreate

logger = structlog.get_logger(__name__)


class BookNotFoundError(LookupError):
    """No book matches the requested title."""

    def __init__(self, title: str):
        super().__init__(f"Could not find a book titled {title}")
        self.title = title


class BookRepository:
    """
    Book operations over a single MongoDB collection.

    The collection handle is bound once at construction and shared by all
    requests; the driver owns connection-level concurrency.
    """

    def __init__(self, collection: AsyncIOMotorCollection):
        self._collection = collection

    async def create_book(self, book: BookCreate) -> str:
        """
        Insert a new book under a freshly generated identifier.

        Args:
            book: Validated book payload

        Returns:
            The inserted identifier as a hex string
        """
        document = book.to_document()
        document["_id"] = ObjectId()
        try:
            result = await self._collection.insert_one(document)
        except PyMongoError as e:
            logger.error("Failed to insert book", title=book.title, error=str(e))
            raise

        logger.info("Inserted book", title=book.title, book_id=str(result.inserted_id))
        return str(result.inserted_id)

    async def get_book_by_title(self, title: str) -> Book:
        """
        Get a single book by exact title.

        Raises:
            BookNotFoundError: If no document has this title
        """
        document = await self.find_raw_by_title(title)
        return Book.from_document(document)

    async def find_raw_by_title(self, title: str) -> Dict[str, Any]:
        """
        Get the stored document for a title, with ``_id`` rendered as a string.

        Raises:
            BookNotFoundError: If no document has this title
        """
        try:
            document = await self._collection.find_one({"title": title})
        except PyMongoError as e:
            logger.error("Failed to search for book", title=title, error=str(e))
            raise

        if document is None:
            raise BookNotFoundError(title)

        document["_id"] = str(document["_id"])
        return document

    async def list_books(self) -> List[Book]:
        """Get every book in storage order."""
        books = []
        try:
            async for document in self._collection.find({}):
                books.append(Book.from_document(document))
        except PyMongoError as e:
            logger.error("Error iterating through books", error=str(e))
            raise

        return books

    async def delete_book_by_title(self, title: str) -> None:
        """
        Delete the first book with this exact title.

        Raises:
            BookNotFoundError: If nothing was deleted
        """
        try:
            result = await self._collection.delete_one({"title": title})
        except PyMongoError as e:
            logger.error("Error when trying to delete book", title=title, error=str(e))
            raise

        if result.deleted_count < 1:
            raise BookNotFoundError(title)

        logger.info("Deleted book", title=title)

    async def health_check(self) -> Dict:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self._collection.database.command("ping")
            books_count = await self._collection.count_documents({})

            return {
                "status": "healthy",
                "books_count": books_count
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
