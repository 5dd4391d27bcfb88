import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import ValidationError

from ..models.book_models import Book, BookImportRequest, BookInfo, BookSummary, Page
from ..services.database_service import db_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["books"])


# Helper function to get a book by ID or raise 404
def get_book_or_404(book_id: str) -> Book:
    """
    Look up a book by ID and return it, or raise HTTPException(404) if not found.

    Args:
        book_id: The book identifier

    Returns:
        The Book model

    Raises:
        HTTPException: 404 if the book is not found
    """
    book = db_service.get_book(book_id)
    if not book:
        raise HTTPException(status_code=404, detail="Book not found")
    return book


@router.get("/", response_model=List[BookSummary])
async def list_books(
    search: Optional[str] = Query(
        None, description="Case-insensitive match on title or author"
    ),
):
    """
    List gallery books, newest first
    """
    try:
        return db_service.list_book_summaries(search)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error listing books: {str(e)}")


@router.get("/random", response_model=Book)
async def get_random_book():
    """
    Get a random book from the catalog
    """
    book = db_service.get_random_book()
    if not book:
        raise HTTPException(status_code=404, detail="No books available")
    return book


@router.get("/isbn/{isbn}", response_model=Book)
async def get_book_by_isbn(isbn: str):
    """
    Get a book by its ISBN-13
    """
    book = db_service.get_book_by_isbn(isbn)
    if not book:
        raise HTTPException(status_code=404, detail="Book not found")
    return book


@router.get("/{book_id}", response_model=Book)
async def get_book(book_id: str):
    """
    Get a book by ID
    """
    return get_book_or_404(book_id)


@router.get("/{book_id}/pages", response_model=List[Page])
async def get_book_pages(book_id: str):
    """
    Get the pages of a book in reading order, with their word timings
    """
    try:
        get_book_or_404(book_id)
        return db_service.get_book_pages(book_id)
    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting pages: {str(e)}")


@router.get("/{book_id}/info", response_model=BookInfo)
async def get_book_info(book_id: str):
    """
    Get the details shown in the book info panel
    """
    info = db_service.get_book_info(book_id)
    if not info:
        raise HTTPException(status_code=404, detail="Book not found")
    return info


@router.post("/import")
async def import_book(request: BookImportRequest) -> Dict[str, Any]:
    """
    Import a book with its pages into the catalog.

    Word timing data is validated by the request model: arrays of different
    lengths or unsorted times are rejected before anything is stored.
    """
    try:
        book_id = db_service.import_book(request)
        if not book_id:
            raise HTTPException(status_code=500, detail="Failed to import book")

        return {
            "message": "Book imported successfully",
            "book_id": book_id,
            "pages": len(request.pages),
        }
    except HTTPException:
        raise
    except (ValueError, ValidationError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error importing book: {e}")
        raise HTTPException(status_code=500, detail=f"Error importing book: {str(e)}")
