"""
Genre API Routes

Genres are shared by all users; listing still requires a signed-in caller.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from shelfkeeper.api.dependencies import get_current_principal, get_genre_repository
from shelfkeeper.api.schemas import GenreResponse
from shelfkeeper.storage.genre_repository import GenreRepository

router = APIRouter(
    prefix="/genres",
    tags=["genres"],
    dependencies=[Depends(get_current_principal)],
)


@router.get("", response_model=list[GenreResponse])
async def list_genres(
    search: Optional[str] = Query(None, max_length=50, description="Case-insensitive name filter"),
    repo: GenreRepository = Depends(get_genre_repository),
):
    """List genres ordered by name."""
    return [GenreResponse.model_validate(genre) for genre in await repo.list_genres(search)]
