"""
API Schemas for Shelfkeeper

Pydantic models for request validation and response serialization:
- Auth models
- Book models
- Genre and statistics models
- Import report models

Design Decisions:
1. Strict validation: Use Pydantic's validation for all inputs
2. Separate Request/Response: Clear distinction between inputs and outputs
3. Field limits mirror the CSV importer so both paths accept the same books
4. Examples: OpenAPI documentation with realistic examples
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from shelfkeeper.transfer.validation import (
    MAX_AUTHOR_LENGTH,
    MAX_EDITION_LENGTH,
    MAX_GENRE_LENGTH,
    MAX_ISBN_LENGTH,
    MAX_PUBLISHED_DATE_LENGTH,
    MAX_RATING,
    MAX_TITLE_LENGTH,
    MIN_RATING,
    normalize_genres,
)


# =============================================================================
# Enums
# =============================================================================

class SortField(str, Enum):
    """Sortable book fields."""
    TITLE = "title"
    AUTHOR = "author"
    PUBLISHED_DATE = "published_date"
    RATING = "rating"
    CREATED_AT = "created_at"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


# =============================================================================
# Auth Schemas
# =============================================================================

class RegisterRequest(BaseModel):
    """Account registration request."""

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    confirm_password: str
    display_name: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "reader@example.com",
                "password": "correct-horse",
                "confirm_password": "correct-horse",
                "display_name": "Avid Reader",
            }
        }
    )


class LoginRequest(BaseModel):
    """Login with email and password."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    """Issued session token."""

    token: str
    token_type: str = "bearer"
    user_id: str
    email: str
    display_name: Optional[str] = None
    expires_at: datetime


class Token(BaseModel):
    """OAuth2 token response for the password flow."""

    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """Current principal profile."""

    id: str
    email: str
    display_name: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Book Schemas
# =============================================================================

class BookBase(BaseModel):
    """Base book fields."""

    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    author: str = Field(..., min_length=1, max_length=MAX_AUTHOR_LENGTH)

    genres: list[str] = Field(default_factory=list)

    published_date: str = Field(..., min_length=1, max_length=MAX_PUBLISHED_DATE_LENGTH)
    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING)

    edition: Optional[str] = Field(None, max_length=MAX_EDITION_LENGTH)
    isbn: Optional[str] = Field(None, max_length=MAX_ISBN_LENGTH)


class BookWrite(BookBase):
    """Shared input handling for create and update."""

    @field_validator("title", "author", "published_date", mode="before")
    @classmethod
    def strip_required(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("edition", "isbn", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("genres")
    @classmethod
    def clean_genres(cls, value: list[str]) -> list[str]:
        genres = normalize_genres(value)
        too_long = [genre for genre in genres if len(genre) > MAX_GENRE_LENGTH]
        if too_long:
            raise ValueError(f"Genre names must be at most {MAX_GENRE_LENGTH} characters")
        return genres


class BookCreate(BookWrite):
    """Book creation request."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Dune",
                "author": "Frank Herbert",
                "genres": ["Science Fiction", "Fiction"],
                "published_date": "1965",
                "rating": 5,
                "edition": "First Edition",
                "isbn": "9780441172719",
            }
        }
    )


class BookUpdate(BookWrite):
    """Book update request. Replaces every editable field."""


class BookResponse(BookBase):
    """Book response model."""

    id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookListResponse(BaseModel):
    """Paginated book list response."""

    items: list[BookResponse]
    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_previous_page: bool
    has_next_page: bool


# =============================================================================
# Genre & Statistics Schemas
# =============================================================================

class GenreResponse(BaseModel):
    name: str
    is_system_genre: bool

    model_config = ConfigDict(from_attributes=True)


class GenreStats(BaseModel):
    """Books and average rating for one genre."""

    genre: str
    count: int
    average_rating: float


class CollectionStatsResponse(BaseModel):
    """Statistics for the caller's collection."""

    total_books: int
    average_rating: float
    genre_distribution: list[GenreStats]


# =============================================================================
# Import Schemas
# =============================================================================

class ImportRowResponse(BaseModel):
    row: int
    status: str
    reason: Optional[str] = None
    title: str = ""
    author: str = ""


class ImportResponse(BaseModel):
    """Outcome of a bulk import, one entry per data row."""

    total_rows: int
    created: int
    duplicates: int
    rejected: int
    rows: list[ImportRowResponse]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "total_rows": 3,
                "created": 1,
                "duplicates": 1,
                "rejected": 1,
                "rows": [
                    {"row": 1, "status": "created", "reason": None, "title": "Dune", "author": "Frank Herbert"},
                    {"row": 2, "status": "duplicate", "reason": "duplicate of row 1", "title": "Dune", "author": "Frank Herbert"},
                    {"row": 3, "status": "invalid", "reason": "missing title", "title": "", "author": "NoTitle"},
                ],
            }
        }
    )


# =============================================================================
# Error Schemas
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    detail: Optional[str] = None
    code: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Book not found",
                "detail": "No Book with identifier 'abc123' exists",
                "code": "NOT_FOUND",
                "timestamp": "2025-01-20T12:00:00Z",
            }
        }
    )


# =============================================================================
# Health Check
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    database: str = "connected"
