"""
API Routes for Shelfkeeper

Route modules:
- auth: Registration, login, current user
- books: Book CRUD and filtered listing
- genres: Shared genre list
- stats: Collection statistics
- transfer: CSV import and export
"""

from shelfkeeper.api.routes.auth import router as auth_router
from shelfkeeper.api.routes.books import router as books_router
from shelfkeeper.api.routes.genres import router as genres_router
from shelfkeeper.api.routes.stats import router as stats_router
from shelfkeeper.api.routes.transfer import router as transfer_router

__all__ = [
    "auth_router",
    "books_router",
    "genres_router",
    "stats_router",
    "transfer_router",
]
