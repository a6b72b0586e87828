"""
Row validation for bulk import.

validate_row never raises for bad data. It returns Valid(candidate) or
Invalid(reason), and every problem found in the row is listed in the
reason.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from shelfkeeper.transfer.parser import RawRow


MAX_TITLE_LENGTH = 255
MAX_AUTHOR_LENGTH = 255
MAX_PUBLISHED_DATE_LENGTH = 50
MAX_EDITION_LENGTH = 100
MAX_ISBN_LENGTH = 20
MAX_GENRE_LENGTH = 50
MIN_RATING = 1
MAX_RATING = 5


@dataclass
class BookCandidate:
    """A validated row, ready for duplicate classification."""

    row_number: int
    title: str
    author: str
    published_date: str
    rating: int
    genres: list[str] = field(default_factory=list)
    edition: Optional[str] = None
    isbn: Optional[str] = None

    @property
    def dedup_key(self) -> tuple[str, str]:
        return dedup_key(self.title, self.author)

    def to_create_kwargs(self) -> dict:
        return {
            "title": self.title,
            "author": self.author,
            "published_date": self.published_date,
            "rating": self.rating,
            "edition": self.edition,
            "isbn": self.isbn,
        }


@dataclass
class Valid:
    candidate: BookCandidate


@dataclass
class Invalid:
    row_number: int
    reason: str
    title: str = ""
    author: str = ""


RowValidation = Union[Valid, Invalid]


def dedup_key(title: str, author: str) -> tuple[str, str]:
    """Case-insensitive identity of a book within one collection."""
    return title.strip().casefold(), author.strip().casefold()


def normalize_genres(names: Iterable[str]) -> list[str]:
    """
    Trim genre names and drop empties and case-insensitive repeats.

    The first spelling of a repeated name is kept.
    """
    seen = set()
    result = []
    for name in names:
        name = (name or "").strip()
        if name and name.casefold() not in seen:
            seen.add(name.casefold())
            result.append(name)
    return result


def split_genres(value: str) -> list[str]:
    return normalize_genres((value or "").split(","))


def _optional(value: str) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def validate_row(row: RawRow) -> RowValidation:
    """
    Check one raw row.

    Args:
        row: Parsed CSV record

    Returns:
        Valid with a BookCandidate, or Invalid with "; "-joined reasons
    """
    problems: list[str] = []

    title = row.get("title").strip()
    if not title:
        problems.append("missing title")
    elif len(title) > MAX_TITLE_LENGTH:
        problems.append("title too long")

    author = row.get("author").strip()
    if not author:
        problems.append("missing author")
    elif len(author) > MAX_AUTHOR_LENGTH:
        problems.append("author too long")

    rating = None
    rating_text = row.get("rating").strip()
    if not rating_text:
        problems.append("missing rating")
    else:
        try:
            rating = int(rating_text)
        except ValueError:
            problems.append("rating must be an integer")
        else:
            if not MIN_RATING <= rating <= MAX_RATING:
                problems.append("rating out of range")

    published_date = row.get("publisheddate").strip()
    if not published_date:
        problems.append("missing published date")
    elif len(published_date) > MAX_PUBLISHED_DATE_LENGTH:
        problems.append("published date too long")

    edition = _optional(row.get("edition"))
    if edition and len(edition) > MAX_EDITION_LENGTH:
        problems.append("edition too long")

    isbn = _optional(row.get("isbn"))
    if isbn and len(isbn) > MAX_ISBN_LENGTH:
        problems.append("isbn too long")

    genres = split_genres(row.get("genres"))
    if any(len(genre) > MAX_GENRE_LENGTH for genre in genres):
        problems.append("genre too long")

    if problems:
        return Invalid(row_number=row.row_number, reason="; ".join(problems), title=title, author=author)

    return Valid(BookCandidate(
        row_number=row.row_number,
        title=title,
        author=author,
        published_date=published_date,
        rating=rating,
        genres=genres,
        edition=edition,
        isbn=isbn,
    ))
