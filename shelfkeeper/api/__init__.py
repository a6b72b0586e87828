"""
Shelfkeeper - FastAPI Backend.

Multi-user book collection API with CSV import/export.
"""

from .main import app, create_app, main
from .dependencies import (
    Settings,
    get_settings,
    get_db,
    get_current_principal,
    get_owned_book_repository,
)
from .schemas import (
    BookBase,
    BookCreate,
    BookUpdate,
    BookResponse,
    BookListResponse,
    AuthResponse,
    ImportResponse,
    CollectionStatsResponse,
    HealthResponse,
    ErrorResponse,
)

__all__ = [
    # Application
    "app",
    "create_app",
    "main",
    # Dependencies
    "Settings",
    "get_settings",
    "get_db",
    "get_current_principal",
    "get_owned_book_repository",
    # Schemas
    "BookBase",
    "BookCreate",
    "BookUpdate",
    "BookResponse",
    "BookListResponse",
    "AuthResponse",
    "ImportResponse",
    "CollectionStatsResponse",
    "HealthResponse",
    "ErrorResponse",
]
