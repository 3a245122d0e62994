"""
FastAPI main application for the Library Book API.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from library_api.config import APIConfig, config
from library_api.database import BookNotFoundError, BookRepository
from library_api.models import APIResponse, BookCreate, HealthResponse
from library_api.secrets import resolve_connection_uri

# Setup logging
logger = structlog.get_logger(__name__)

router = APIRouter()


def envelope(status_code: int, message: str, data: Any = None) -> JSONResponse:
    """Wrap a payload in the ``{status, message, data}`` response envelope."""
    body = APIResponse(status=status_code, message=message, data={"data": data})
    return JSONResponse(status_code=status_code, content=body.model_dump())


def get_repository(request: Request) -> BookRepository:
    """Return the repository bound to the application at startup."""
    repository = getattr(request.app.state, "repository", None)
    if repository is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database service not available"
        )
    return repository


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings: APIConfig = app.state.settings
    logger.info("Starting Library Book API")

    # A missing or broken secret aborts startup before the server listens
    uri = app.state.connection_uri
    if not uri:
        uri = await asyncio.to_thread(resolve_connection_uri, settings)

    client = AsyncIOMotorClient(uri)
    try:
        await client.admin.command("ping")
    except PyMongoError as e:
        logger.error("Failed to connect to database", error=str(e))
        client.close()
        raise
    logger.info(
        "Database connection established",
        database=settings.mongodb_database,
        collection=settings.mongodb_collection
    )

    collection = client[settings.mongodb_database][settings.mongodb_collection]
    app.state.repository = BookRepository(collection)

    yield

    logger.info("Shutting down Library Book API")
    app.state.repository = None
    client.close()


@router.get("/", tags=["Health"])
async def hello():
    return {"data": "Hello from my basic REST API"}


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    repository = getattr(request.app.state, "repository", None)
    db_status = "unavailable"
    if repository is not None:
        health_info = await repository.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        version=request.app.version,
        database_status=db_status
    )


@router.post("/book", tags=["Books"])
async def create_book(
    book: BookCreate,
    repository: BookRepository = Depends(get_repository)
):
    """Create a book. ``title`` is required and must not be empty."""
    try:
        book_id = await repository.create_book(book)
    except Exception as e:
        logger.error("Failed to create book", title=book.title, error=str(e))
        return envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error inserting book", str(e))

    return envelope(status.HTTP_201_CREATED, "success", {"insertedId": book_id})


@router.get("/book/{title}", tags=["Books"])
async def read_book(
    title: str,
    repository: BookRepository = Depends(get_repository)
):
    """Get a single book by exact title."""
    try:
        book = await repository.get_book_by_title(title)
    except BookNotFoundError as e:
        return envelope(status.HTTP_404_NOT_FOUND, f"Error searching for book {title}", str(e))
    except Exception as e:
        logger.error("Failed to get book", title=title, error=str(e))
        return envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR, f"Error searching for book {title}", str(e)
        )

    return envelope(status.HTTP_200_OK, f"Got result for title {title}", book.to_json())


@router.get("/read", tags=["Books"], deprecated=True)
async def read(
    title: str,
    repository: BookRepository = Depends(get_repository)
):
    """
    Legacy lookup by ``title`` query parameter, replaced by ``GET /book/{title}``.

    Returns the stored document as-is, without the response envelope.
    """
    try:
        document = await repository.find_raw_by_title(title)
    except BookNotFoundError as e:
        return envelope(status.HTTP_404_NOT_FOUND, "error", str(e))
    except Exception as e:
        logger.error("Failed to read book", title=title, error=str(e))
        return envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "error", str(e))

    logger.info("Legacy read", title=title, document=document)
    return JSONResponse(status_code=status.HTTP_200_OK, content=document)


@router.get("/books", tags=["Books"])
async def list_books(repository: BookRepository = Depends(get_repository)):
    """Get all books in storage order."""
    try:
        books = await repository.list_books()
    except Exception as e:
        logger.error("Failed to list books", error=str(e))
        return envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Error iterating through books", str(e)
        )

    return envelope(status.HTTP_200_OK, "success", [book.to_json() for book in books])


@router.delete("/book/{title}", tags=["Books"])
async def delete_book(
    title: str,
    repository: BookRepository = Depends(get_repository)
):
    """Delete the first book with this exact title."""
    try:
        await repository.delete_book_by_title(title)
    except BookNotFoundError as e:
        return envelope(status.HTTP_404_NOT_FOUND, "error", str(e))
    except Exception as e:
        logger.error("Failed to delete book", title=title, error=str(e))
        return envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            f"Error when trying to delete book {title}",
            str(e)
        )

    return envelope(status.HTTP_200_OK, "success", f"Success deleting book {title}")


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions."""
    response = envelope(exc.status_code, "error", exc.detail)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed or invalid request input as a 400."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return envelope(status.HTTP_400_BAD_REQUEST, "Error in request", problems)


def create_app(
    settings: Optional[APIConfig] = None,
    connection_uri: Optional[str] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration to use, defaults to the process-wide config
        connection_uri: Already resolved MongoDB URI; resolved during
            startup when omitted
    """
    settings = settings or config

    app = FastAPI(
        title=settings.api_title,
        description="A minimal REST API for managing book records stored in MongoDB.",
        version=settings.api_version,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.connection_uri = connection_uri
    app.state.repository = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path)
        return envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            str(exc) if settings.debug else None
        )

    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(router)

    return app


app = create_app()
