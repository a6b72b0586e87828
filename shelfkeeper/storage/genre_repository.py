"""
Genre Repository for Shelfkeeper

Genres are global tags. Unknown names are created on demand when books are
written, matching existing names case-insensitively so "sci-fi" and "Sci-Fi"
share one row.
"""

from typing import Iterable, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import SYSTEM_GENRES, Genre, utcnow


class GenreRepository:
    """Async repository for genre lookups and auto-creation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_genres(self, search: Optional[str] = None) -> list[Genre]:
        """
        List genres ordered by name.

        Args:
            search: Optional case-insensitive substring filter

        Returns:
            Matching genres
        """
        stmt = select(Genre)
        if search:
            stmt = stmt.where(Genre.name.ilike(f"%{search.strip()}%"))
        stmt = stmt.order_by(Genre.name)
        return list((await self.session.execute(stmt)).scalars().all())

    async def ensure_exist(self, names: Iterable[str]) -> list[Genre]:
        """
        Resolve genre names to rows, creating any that are missing.

        Args:
            names: Genre names, already trimmed

        Returns:
            Genres in the order of first appearance, without duplicates
        """
        wanted: dict[str, str] = {}
        for name in names:
            if name and name.casefold() not in wanted:
                wanted[name.casefold()] = name

        if not wanted:
            return []

        # SQLite lower() only folds ASCII; compare casefolded names here
        existing = {
            genre.name.casefold(): genre
            for genre in (await self.session.execute(select(Genre))).scalars().all()
            if genre.name.casefold() in wanted
        }

        resolved = []
        created = []
        for key, name in wanted.items():
            genre = existing.get(key)
            if genre is None:
                genre = Genre(name=name, is_system_genre=False, created_at=utcnow())
                self.session.add(genre)
                existing[key] = genre
                created.append(name)
            resolved.append(genre)

        if created:
            await self.session.flush()
            logger.info(f"Created {len(created)} new genres: {', '.join(created)}")

        return resolved

    async def seed_system_genres(self) -> int:
        """Insert the built-in genres that are not present yet."""
        present = set((await self.session.execute(select(Genre.name))).scalars().all())
        missing = [name for name in SYSTEM_GENRES if name not in present]
        for name in missing:
            self.session.add(Genre(name=name, is_system_genre=True, created_at=utcnow()))
        if missing:
            await self.session.flush()
        return len(missing)
