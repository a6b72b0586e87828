"""
Database models for Shelfkeeper.

Books are owned by exactly one user; genres are shared by everyone.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form SQLite stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


SYSTEM_GENRES = (
    "Fiction",
    "Non-Fiction",
    "Science",
    "Technology",
    "Biography",
    "History",
    "Romance",
    "Mystery",
    "Fantasy",
    "Self-Help",
)


book_genres = Table(
    "book_genres",
    Base.metadata,
    Column("book_id", String(36), ForeignKey("books.id", ondelete="CASCADE"), primary_key=True),
    Column("genre_name", String(50), ForeignKey("genres.name"), primary_key=True),
)


class User(Base):
    """User model for authentication."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)  # UUID
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(255))
    created_at = Column(DateTime, default=utcnow)

    # Lockout state
    failed_login_attempts = Column(Integer, default=0, nullable=False)
    locked_until = Column(DateTime)

    books = relationship("Book", back_populates="owner", passive_deletes=True)


class Genre(Base):
    """Genre tag. Names are global and unique."""
    __tablename__ = "genres"

    name = Column(String(50), primary_key=True)
    is_system_genre = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)


class Book(Base):
    """SQLAlchemy model for books."""
    __tablename__ = "books"

    id = Column(String(36), primary_key=True)

    title = Column(String(255), nullable=False, index=True)
    author = Column(String(255), nullable=False, index=True)

    # Kept as free text so "1980" or "March 1980" survive unchanged
    published_date = Column(String(50), nullable=False)
    rating = Column(Integer, nullable=False)
    edition = Column(String(100))
    isbn = Column(String(20))

    owner_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="books")
    genres = relationship("Genre", secondary=book_genres, lazy="selectin", order_by=Genre.name)

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_books_rating_range"),
        Index("idx_books_owner_title_author", "owner_id", "title", "author"),
        Index("idx_books_owner_created", "owner_id", "created_at"),
    )

    @property
    def genre_names(self) -> list[str]:
        return [genre.name for genre in self.genres]

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "genres": self.genre_names,
            "published_date": self.published_date,
            "rating": self.rating,
            "edition": self.edition,
            "isbn": self.isbn,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
