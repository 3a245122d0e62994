"""
API models and schemas for the FastAPI application.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class BookCreate(BaseModel):
    """Request body for creating a book."""
    title: str = Field(..., min_length=1, description="Book title")
    page_count: Optional[int] = Field(None, alias="pageCount", description="Number of pages")
    long_description: Optional[str] = Field(None, alias="longDescription", description="Long description")
    isbn: Optional[str] = Field(None, description="ISBN")
    authors: Optional[List[str]] = Field(None, description="Ordered list of authors")
    categories: Optional[List[str]] = Field(None, description="Ordered list of categories")
    status: Optional[str] = Field(None, description="Publication status")

    model_config = {"populate_by_name": True}

    def to_document(self) -> Dict[str, Any]:
        """Render the book as a MongoDB document, omitting unset fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Book(BookCreate):
    """Stored book, including its identifier."""
    id: str = Field(..., description="Unique book identifier")

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Book":
        """Build a book from a raw MongoDB document."""
        fields = {key: value for key, value in document.items() if key != "_id"}
        fields["id"] = str(document["_id"])
        return cls(**fields)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class APIResponse(BaseModel):
    """Uniform response envelope."""
    status: int = Field(..., description="HTTP status code")
    message: str = Field(..., description="Human-readable message")
    data: Dict[str, Any] = Field(default_factory=dict, description="Response payload")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
