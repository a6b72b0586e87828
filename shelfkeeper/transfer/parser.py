"""
CSV payload parsing for bulk import.

Turns raw upload bytes into RawRow records keyed by canonical column
name. Only problems with the payload as a whole raise; anything wrong with
an individual row is left for validation.
"""

import csv
import io
from dataclasses import dataclass, field
from typing import Iterator

from shelfkeeper.errors import InvalidPayload


COMMENT_MARKER = "#"

# Canonical column names, in export order
COLUMNS = ("title", "author", "genres", "publisheddate", "rating", "edition", "isbn")
REQUIRED_COLUMNS = ("title", "author", "publisheddate", "rating")

DISPLAY_NAMES = {
    "title": "Title",
    "author": "Author",
    "genres": "Genres",
    "publisheddate": "PublishedDate",
    "rating": "Rating",
    "edition": "Edition",
    "isbn": "ISBN",
}

HEADER_ALIASES = {
    "booktitle": "title",
    "bookauthor": "author",
    "genre": "genres",
    "published": "publisheddate",
    "publishdate": "publisheddate",
    "publicationdate": "publisheddate",
}


@dataclass
class RawRow:
    """One data record, before validation."""

    row_number: int
    values: dict[str, str] = field(default_factory=dict)

    def get(self, column: str) -> str:
        return self.values.get(column, "")


def normalize_header(header: str) -> str:
    """Map a header cell to its canonical column name."""
    key = "".join(ch for ch in (header or "").strip().lower() if ch not in " _-")
    return HEADER_ALIASES.get(key, key)


def _ends_in_quoted_field(line: str, in_quotes: bool) -> bool:
    """
    Track csv quoting across one physical line.

    A quote opens a field only at the start of the field; elsewhere it is a
    literal character. Inside a quoted field ``""`` is an escaped quote.
    """
    field_start = not in_quotes
    i = 0
    while i < len(line):
        ch = line[i]
        if in_quotes:
            if ch == '"':
                if line[i + 1:i + 2] == '"':
                    i += 2
                    continue
                in_quotes = False
        elif ch == '"' and field_start:
            in_quotes = True
            field_start = False
        else:
            field_start = ch == ","
        i += 1
    return in_quotes


def _data_lines(text: str) -> Iterator[str]:
    """
    Yield the lines of ``text`` that are not comments or blank.

    Lines inside a quoted multi-line field are always kept.
    """
    in_quotes = False
    for line in io.StringIO(text, newline=""):
        if not in_quotes:
            stripped = line.strip()
            if not stripped or stripped.startswith(COMMENT_MARKER):
                continue
        in_quotes = _ends_in_quoted_field(line, in_quotes)
        yield line


def decode_payload(payload: bytes) -> str:
    """Decode UTF-8, dropping a leading byte order mark."""
    try:
        return payload.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise InvalidPayload("Unreadable file", detail="unreadable encoding: file must be UTF-8 encoded")


def parse(payload: bytes) -> list[RawRow]:
    """
    Parse a CSV upload.

    Args:
        payload: Raw file bytes

    Returns:
        Data rows in file order, numbered from 1

    Raises:
        InvalidPayload: Undecodable bytes, broken CSV structure, no header
            row, or required columns missing from the header
    """
    text = decode_payload(payload)
    reader = csv.reader(_data_lines(text))

    try:
        header = next(reader, None)
        if header is None or not any(cell.strip() for cell in header):
            raise InvalidPayload("Missing header row", detail="missing header row")

        # First occurrence of a column wins
        positions: dict[str, int] = {}
        for index, cell in enumerate(header):
            positions.setdefault(normalize_header(cell), index)

        missing = [DISPLAY_NAMES[column] for column in REQUIRED_COLUMNS if column not in positions]
        if missing:
            raise InvalidPayload(
                "Missing required columns",
                detail=f"missing required column(s): {', '.join(missing)}",
            )

        rows = []
        for record in reader:
            if not any(cell.strip() for cell in record):
                continue
            values = {
                column: record[positions[column]] if positions[column] < len(record) else ""
                for column in COLUMNS
                if column in positions
            }
            rows.append(RawRow(row_number=len(rows) + 1, values=values))
    except csv.Error as exc:
        raise InvalidPayload("Malformed CSV", detail=str(exc))

    return rows
