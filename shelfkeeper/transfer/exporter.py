"""
CSV export of a principal's collection.

The output uses the import layout, so an export can always be uploaded
again. An empty collection exports as a commented template.
"""

import csv
import io
from datetime import datetime, timezone
from typing import Iterable, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from shelfkeeper.storage.book_repository import OwnedBookRepository, StoredBook
from shelfkeeper.transfer.parser import COLUMNS, COMMENT_MARKER, DISPLAY_NAMES


EXPORT_HEADER = [DISPLAY_NAMES[column] for column in COLUMNS]
HEADER_LINE = ",".join(EXPORT_HEADER) + "\n"

TEMPLATE_COMMENTS = (
    "CSV Import Template for Library Books",
    "Required fields: Title, Author, PublishedDate, Rating",
    "Optional fields: Genres, Edition, ISBN",
    "Title: up to 255 characters",
    "Author: up to 255 characters",
    "Genres: comma-separated list in one quoted field, e.g. \"Fiction,Classic\"",
    "PublishedDate: free text up to 50 characters, e.g. 1925, March 1925 or 1925-04-10",
    "Rating: whole number from 1 to 5",
    "Edition: optional, up to 100 characters",
    "ISBN: optional, up to 20 characters",
    "Lines starting with # are ignored on import",
)


def _writer(buffer: io.StringIO):
    # Quote every text field so a title starting with # never reads as a comment
    return csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")


def render_books(books: Iterable[StoredBook]) -> str:
    buffer = io.StringIO()
    buffer.write(HEADER_LINE)
    writer = _writer(buffer)
    for book in books:
        writer.writerow([
            book.title,
            book.author,
            ",".join(book.genres),
            book.published_date,
            book.rating,
            book.edition or "",
            book.isbn or "",
        ])
    return buffer.getvalue()


def render_template() -> str:
    """Comment lines describing each field, then the header row."""
    buffer = io.StringIO()
    for line in TEMPLATE_COMMENTS:
        buffer.write(f"{COMMENT_MARKER} {line}\n")
    buffer.write(HEADER_LINE)
    return buffer.getvalue()


async def export_owned_records(session: AsyncSession, principal_id: str) -> str:
    """
    Serialize the principal's books, ordered by title.

    Returns:
        CSV text, or the import template when the collection is empty
    """
    books = await OwnedBookRepository(session, principal_id).list_all()
    if not books:
        logger.info(f"No books to export for {principal_id}, returning template")
        return render_template()

    logger.info(f"Exported {len(books)} books for {principal_id}")
    return render_books(books)


def export_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"library_export_{now:%Y%m%d_%H%M%S}.csv"
