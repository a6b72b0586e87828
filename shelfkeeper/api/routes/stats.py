"""
Statistics API Routes for Shelfkeeper

Collection statistics for the caller:
- Total books and average rating
- Per-genre counts and average ratings
"""

from fastapi import APIRouter, Depends
from loguru import logger

from shelfkeeper.api.dependencies import get_owned_book_repository
from shelfkeeper.api.schemas import CollectionStatsResponse
from shelfkeeper.storage.book_repository import OwnedBookRepository

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get(
    "",
    response_model=CollectionStatsResponse,
)
async def get_collection_stats(
    repo: OwnedBookRepository = Depends(get_owned_book_repository),
):
    """
    Get collection statistics overview.

    Genres are ordered by book count, most common first.
    """
    logger.info("Fetching collection stats")
    return CollectionStatsResponse(**await repo.get_stats())
