"""
BulkReconciler: CSV import with per-row accounting.

Pipeline:
1. parse: payload -> RawRows (payload-level failures raise InvalidPayload)
2. validate_row: RawRow -> Valid | Invalid
3. classify: Valid candidates -> new, or duplicate of the caller's own
   collection / of an earlier row in the same upload
4. commit: every new candidate is written in the request's unit of work

Row problems never stop the batch; each row gets exactly one RowOutcome.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from shelfkeeper.storage.book_repository import OwnedBookRepository, StoredBook
from shelfkeeper.storage.genre_repository import GenreRepository
from shelfkeeper.transfer.parser import parse
from shelfkeeper.transfer.validation import BookCandidate, Invalid, normalize_genres, validate_row


ALREADY_IN_COLLECTION = "already in collection"


class RowStatus(str, Enum):
    CREATED = "created"
    DUPLICATE = "duplicate"
    INVALID = "invalid"


@dataclass
class RowOutcome:
    row: int
    status: RowStatus
    reason: Optional[str] = None
    title: str = ""
    author: str = ""


@dataclass
class BatchOutcome:
    """Per-request import report. Never persisted."""

    rows: list[RowOutcome] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    @property
    def created(self) -> int:
        return self._count(RowStatus.CREATED)

    @property
    def duplicates(self) -> int:
        return self._count(RowStatus.DUPLICATE)

    @property
    def rejected(self) -> int:
        return self._count(RowStatus.INVALID)

    def _count(self, status: RowStatus) -> int:
        return sum(1 for outcome in self.rows if outcome.status == status)


@dataclass
class New:
    candidate: BookCandidate


@dataclass
class Duplicate:
    candidate: BookCandidate
    reason: str


Classification = Union[New, Duplicate]


def classify(
    candidate: BookCandidate,
    existing_keys: set[tuple[str, str]],
    seen: dict[tuple[str, str], int],
) -> Classification:
    """
    Decide whether a candidate is new.

    Args:
        candidate: Validated row
        existing_keys: Dedup keys of the caller's stored books
        seen: Dedup key -> row number of earlier new rows in this upload;
            updated when the candidate is new

    Returns:
        New or Duplicate
    """
    key = candidate.dedup_key
    if key in existing_keys:
        return Duplicate(candidate, ALREADY_IN_COLLECTION)
    if key in seen:
        return Duplicate(candidate, f"duplicate of row {seen[key]}")
    seen[key] = candidate.row_number
    return New(candidate)


class BulkReconciler:
    """
    Imports a CSV payload into one principal's collection.

    Usage:
        reconciler = BulkReconciler(session, principal_id)
        outcome = await reconciler.run(payload)
    """

    def __init__(self, session: AsyncSession, principal_id: str):
        self.session = session
        self.principal_id = principal_id
        self.books = OwnedBookRepository(session, principal_id)
        self.genres = GenreRepository(session)

    async def run(self, payload: bytes) -> BatchOutcome:
        """
        Parse, validate, classify and commit an upload.

        Raises:
            InvalidPayload: The payload cannot be read as a CSV with the
                required header; no rows are processed
        """
        raw_rows = parse(payload)
        existing_keys = await self.books.title_author_keys()

        outcome = BatchOutcome()
        seen: dict[tuple[str, str], int] = {}
        accepted: list[BookCandidate] = []

        for raw in raw_rows:
            result = validate_row(raw)
            if isinstance(result, Invalid):
                outcome.rows.append(RowOutcome(
                    row=result.row_number,
                    status=RowStatus.INVALID,
                    reason=result.reason,
                    title=result.title,
                    author=result.author,
                ))
                continue

            classified = classify(result.candidate, existing_keys, seen)
            candidate = classified.candidate
            if isinstance(classified, Duplicate):
                outcome.rows.append(RowOutcome(
                    row=candidate.row_number,
                    status=RowStatus.DUPLICATE,
                    reason=classified.reason,
                    title=candidate.title,
                    author=candidate.author,
                ))
            else:
                accepted.append(candidate)
                outcome.rows.append(RowOutcome(
                    row=candidate.row_number,
                    status=RowStatus.CREATED,
                    title=candidate.title,
                    author=candidate.author,
                ))

        await self.commit(accepted)

        logger.info(
            f"Import for {self.principal_id}: {outcome.total_rows} rows, "
            f"{outcome.created} created, {outcome.duplicates} duplicates, {outcome.rejected} rejected"
        )
        return outcome

    async def commit(self, candidates: list[BookCandidate]) -> list[StoredBook]:
        """
        Write new candidates as one batch owned by the principal.

        Unknown genres are created on the way.
        """
        if not candidates:
            return []

        names = normalize_genres(name for candidate in candidates for name in candidate.genres)
        rows = await self.genres.ensure_exist(names)
        resolved = {name.casefold(): genre for name, genre in zip(names, rows)}

        return await self.books.bulk_create([
            {
                **candidate.to_create_kwargs(),
                "genres": [resolved[name.casefold()] for name in candidate.genres],
            }
            for candidate in candidates
        ])
