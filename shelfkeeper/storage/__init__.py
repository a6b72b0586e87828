"""
Storage Module for Shelfkeeper

Persistent storage for principals, books and genres:
- SQLAlchemy models (users, books, genres, book_genres)
- Owner-bound book repository; every book query is scoped to one principal
- Global genre repository with case-insensitive auto-creation
"""

from shelfkeeper.storage.models import (
    Base,
    Book,
    Genre,
    User,
    SYSTEM_GENRES,
)
from shelfkeeper.storage.scoping import scope_to_owner
from shelfkeeper.storage.book_repository import (
    BookFilters,
    OwnedBookRepository,
    StoredBook,
)
from shelfkeeper.storage.genre_repository import GenreRepository
from shelfkeeper.storage.user_repository import UserRepository

__all__ = [
    # Models
    "Base",
    "Book",
    "Genre",
    "User",
    "SYSTEM_GENRES",
    # Scoping
    "scope_to_owner",
    # Repositories
    "BookFilters",
    "OwnedBookRepository",
    "StoredBook",
    "GenreRepository",
    "UserRepository",
]
