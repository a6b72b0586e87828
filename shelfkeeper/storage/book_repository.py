"""
Book Repository for Shelfkeeper

Structured storage for book records using SQLAlchemy:
- SQLite (aiosqlite) by default, any async SQLAlchemy backend works
- Filtering, sorting and pagination
- Per-owner statistics

Design Decisions:
1. Bound to one owner: the repository is created for a principal and every
   statement goes through scope_to_owner
2. Other owners' books behave as missing: get/update/delete return None/False
3. No commits here: the request's unit of work commits or rolls back
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import uuid4

from loguru import logger
from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Book, Genre, book_genres, utcnow
from .scoping import scope_to_owner


SORTABLE_FIELDS = {
    "title": Book.title,
    "author": Book.author,
    "published_date": Book.published_date,
    "rating": Book.rating,
    "created_at": Book.created_at,
}


@dataclass
class StoredBook:
    """Data class for book data transfer."""

    id: str
    title: str
    author: str
    published_date: str
    rating: int

    genres: list[str] = field(default_factory=list)
    edition: Optional[str] = None
    isbn: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: Book) -> "StoredBook":
        """Create from SQLAlchemy model."""
        return cls(
            id=model.id,
            title=model.title,
            author=model.author,
            published_date=model.published_date,
            rating=model.rating,
            genres=model.genre_names,
            edition=model.edition,
            isbn=model.isbn,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


@dataclass
class BookFilters:
    """List filters accepted by OwnedBookRepository.list_books."""

    genres: list[str] = field(default_factory=list)
    min_rating: Optional[int] = None
    search: Optional[str] = None


class OwnedBookRepository:
    """
    Repository for one principal's books.

    Usage:
        repo = OwnedBookRepository(session, principal_id)

        book = await repo.create(
            title="Dune",
            author="Frank Herbert",
            published_date="1965",
            rating=5,
            genres=await GenreRepository(session).ensure_exist(["Science Fiction"]),
        )

        books, total = await repo.list_books(filters=BookFilters(search="dune"))
    """

    def __init__(self, session: AsyncSession, owner_id: str):
        """
        Initialize repository.

        Args:
            session: Request-scoped async session
            owner_id: Principal every query is confined to
        """
        if not owner_id:
            raise ValueError("owner_id is required")
        self.session = session
        self.owner_id = owner_id

    def _scoped(self, statement: Select) -> Select:
        return scope_to_owner(statement, self.owner_id)

    async def _get_model(self, book_id: str) -> Optional[Book]:
        stmt = self._scoped(select(Book).where(Book.id == book_id))
        return (await self.session.execute(stmt)).scalar_one_or_none()

    # =========================================================================
    # CRUD
    # =========================================================================

    async def get(self, book_id: str) -> Optional[StoredBook]:
        """
        Get book by ID.

        Args:
            book_id: Book ID

        Returns:
            StoredBook, or None when missing or owned by someone else
        """
        book = await self._get_model(book_id)
        return StoredBook.from_model(book) if book else None

    async def create(
        self,
        title: str,
        author: str,
        published_date: str,
        rating: int,
        genres: list[Genre],
        edition: Optional[str] = None,
        isbn: Optional[str] = None,
    ) -> StoredBook:
        """Create a book owned by this repository's principal."""
        book = self._new_book(
            title=title,
            author=author,
            published_date=published_date,
            rating=rating,
            genres=genres,
            edition=edition,
            isbn=isbn,
        )
        self.session.add(book)
        await self.session.flush()
        return StoredBook.from_model(book)

    async def bulk_create(self, books: list[dict]) -> list[StoredBook]:
        """
        Create many books in one flush.

        Args:
            books: Dicts of create() keyword arguments

        Returns:
            Created books in input order
        """
        models = [self._new_book(**data) for data in books]
        self.session.add_all(models)
        await self.session.flush()
        logger.info(f"Bulk created {len(models)} books for owner {self.owner_id}")
        return [StoredBook.from_model(model) for model in models]

    async def update(self, book_id: str, genres: Optional[list[Genre]] = None, **updates) -> Optional[StoredBook]:
        """
        Update book fields.

        Args:
            book_id: Book ID
            genres: Replacement genre set, if given
            **updates: Column values to overwrite

        Returns:
            Updated StoredBook, or None when missing or owned by someone else
        """
        book = await self._get_model(book_id)
        if not book:
            return None

        for key, value in updates.items():
            if key in ("id", "owner_id", "owner", "created_at"):
                continue
            if hasattr(book, key):
                setattr(book, key, value)

        if genres is not None:
            book.genres = list(genres)

        book.updated_at = utcnow()
        await self.session.flush()
        return StoredBook.from_model(book)

    async def delete(self, book_id: str) -> bool:
        """
        Delete a book.

        Returns:
            True if deleted, False when missing or owned by someone else
        """
        book = await self._get_model(book_id)
        if not book:
            return False

        await self.session.delete(book)
        await self.session.flush()
        return True

    def _new_book(
        self,
        title: str,
        author: str,
        published_date: str,
        rating: int,
        genres: list[Genre],
        edition: Optional[str] = None,
        isbn: Optional[str] = None,
    ) -> Book:
        now = utcnow()
        return Book(
            id=str(uuid4()),
            title=title,
            author=author,
            published_date=published_date,
            rating=rating,
            edition=edition,
            isbn=isbn,
            genres=list(genres),
            owner_id=self.owner_id,
            created_at=now,
            updated_at=now,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_books(
        self,
        page: int = 1,
        limit: int = 20,
        filters: Optional[BookFilters] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[StoredBook], int]:
        """
        List books with filtering and pagination.

        Args:
            page: Page number (1-based)
            limit: Items per page
            filters: Genre / minimum rating / search filters
            sort_by: Field to sort by
            sort_order: "asc" or "desc"

        Returns:
            (List of StoredBooks, total_count)
        """
        filters = filters or BookFilters()
        offset = (page - 1) * limit

        query = self._scoped(select(Book))

        if filters.genres:
            wanted = [genre.strip().lower() for genre in filters.genres if genre.strip()]
            if wanted:
                query = query.where(Book.genres.any(func.lower(Genre.name).in_(wanted)))

        if filters.min_rating is not None:
            query = query.where(Book.rating >= filters.min_rating)

        if filters.search and filters.search.strip():
            pattern = f"%{filters.search.strip()}%"
            query = query.where(or_(Book.title.ilike(pattern), Book.author.ilike(pattern)))

        # Get total count before pagination
        total = (await self.session.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar_one()

        if sort_by not in SORTABLE_FIELDS:
            sort_by, sort_order = "created_at", "desc"
        sort_field = SORTABLE_FIELDS[sort_by]
        if sort_order == "desc":
            query = query.order_by(sort_field.desc(), Book.id)
        else:
            query = query.order_by(sort_field.asc(), Book.id)

        books = (await self.session.execute(query.offset(offset).limit(limit))).scalars().all()

        return [StoredBook.from_model(b) for b in books], total

    async def list_all(self) -> list[StoredBook]:
        """All of the owner's books ordered by title."""
        stmt = self._scoped(select(Book)).order_by(Book.title, Book.author, Book.id)
        books = (await self.session.execute(stmt)).scalars().all()
        return [StoredBook.from_model(b) for b in books]

    async def title_author_keys(self) -> set[tuple[str, str]]:
        """
        Case-folded (title, author) pairs of the owner's books.

        Used by bulk import to spot duplicates without looking at anyone
        else's collection.
        """
        stmt = self._scoped(select(Book.title, Book.author))
        rows = (await self.session.execute(stmt)).all()
        return {(title.strip().casefold(), author.strip().casefold()) for title, author in rows}

    async def count(self) -> int:
        stmt = self._scoped(select(func.count(Book.id)))
        return (await self.session.execute(stmt)).scalar_one()

    async def get_stats(self) -> dict:
        """
        Get collection statistics.

        Returns:
            Statistics dictionary with totals and per-genre breakdown
        """
        totals = self._scoped(select(func.count(Book.id), func.avg(Book.rating)))
        total_books, average_rating = (await self.session.execute(totals)).one()

        per_genre = self._scoped(
            select(
                book_genres.c.genre_name,
                func.count(Book.id).label("count"),
                func.avg(Book.rating).label("average_rating"),
            )
            .select_from(book_genres)
            .join(Book, Book.id == book_genres.c.book_id)
        ).group_by(
            book_genres.c.genre_name,
        ).order_by(
            func.count(Book.id).desc(),
            book_genres.c.genre_name,
        )
        rows = (await self.session.execute(per_genre)).all()

        return {
            "total_books": total_books or 0,
            "average_rating": round(float(average_rating), 2) if average_rating is not None else 0.0,
            "genre_distribution": [
                {
                    "genre": genre,
                    "count": count,
                    "average_rating": round(float(avg), 2),
                }
                for genre, count, avg in rows
            ],
        }
