"""
Book API Routes

CRUD operations for the caller's books: create, read, update, delete, and
filtered listing. Every handler works through an OwnedBookRepository bound
to the authenticated principal, so other users' books answer 404.
"""

import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from shelfkeeper.api.dependencies import get_genre_repository, get_owned_book_repository
from shelfkeeper.api.schemas import (
    BookCreate,
    BookListResponse,
    BookResponse,
    BookUpdate,
    ErrorResponse,
    SortDirection,
    SortField,
)
from shelfkeeper.errors import NotFoundError
from shelfkeeper.storage.book_repository import BookFilters, OwnedBookRepository
from shelfkeeper.storage.genre_repository import GenreRepository


router = APIRouter(prefix="/books", tags=["books"])


# =============================================================================
# CRUD Endpoints
# =============================================================================

@router.post(
    "",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def create_book(
    book: BookCreate,
    repo: OwnedBookRepository = Depends(get_owned_book_repository),
    genres: GenreRepository = Depends(get_genre_repository),
):
    """Create a new book in the caller's collection."""
    logger.info(f"Creating book: {book.title} by {book.author}")

    created = await repo.create(
        title=book.title,
        author=book.author,
        published_date=book.published_date,
        rating=book.rating,
        genres=await genres.ensure_exist(book.genres),
        edition=book.edition,
        isbn=book.isbn,
    )
    return BookResponse.model_validate(created)


@router.get(
    "/{book_id}",
    response_model=BookResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)
async def get_book(
    book_id: str,
    repo: OwnedBookRepository = Depends(get_owned_book_repository),
):
    """Get a book by ID."""
    book = await repo.get(book_id)
    if not book:
        raise NotFoundError("Book", book_id)
    return BookResponse.model_validate(book)


@router.get(
    "",
    response_model=BookListResponse,
)
async def list_books(
    genres: Optional[list[str]] = Query(None, description="Match books tagged with any of these genres"),
    rating: Optional[int] = Query(None, ge=1, le=5, description="Minimum rating"),
    search: Optional[str] = Query(None, max_length=255, description="Search in title and author"),
    sort_by: SortField = Query(SortField.CREATED_AT, description="Sort field"),
    sort_direction: SortDirection = Query(SortDirection.DESC, description="Sort direction"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    repo: OwnedBookRepository = Depends(get_owned_book_repository),
):
    """List the caller's books with pagination, filtering and sorting."""
    logger.info(f"Listing books: page={page}, size={page_size}")

    books, total = await repo.list_books(
        page=page,
        limit=page_size,
        filters=BookFilters(genres=genres or [], min_rating=rating, search=search),
        sort_by=sort_by.value,
        sort_order=sort_direction.value,
    )

    total_pages = math.ceil(total / page_size) if total else 0
    return BookListResponse(
        items=[BookResponse.model_validate(book) for book in books],
        page=page,
        page_size=page_size,
        total_items=total,
        total_pages=total_pages,
        has_previous_page=page > 1,
        has_next_page=page < total_pages,
    )


@router.put(
    "/{book_id}",
    response_model=BookResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)
async def update_book(
    book_id: str,
    book: BookUpdate,
    repo: OwnedBookRepository = Depends(get_owned_book_repository),
    genres: GenreRepository = Depends(get_genre_repository),
):
    """
    Update a book.

    Replaces every editable field, the genre set included.
    """
    logger.info(f"Updating book: {book_id}")

    if await repo.get(book_id) is None:
        raise NotFoundError("Book", book_id)

    updated = await repo.update(
        book_id,
        genres=await genres.ensure_exist(book.genres),
        title=book.title,
        author=book.author,
        published_date=book.published_date,
        rating=book.rating,
        edition=book.edition,
        isbn=book.isbn,
    )
    return BookResponse.model_validate(updated)


@router.delete(
    "/{book_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)
async def delete_book(
    book_id: str,
    repo: OwnedBookRepository = Depends(get_owned_book_repository),
):
    """Delete a book from the caller's collection."""
    logger.info(f"Deleting book: {book_id}")

    if not await repo.delete(book_id):
        raise NotFoundError("Book", book_id)
