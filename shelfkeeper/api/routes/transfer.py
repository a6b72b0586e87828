"""
Import/Export API Routes

- POST /import/books: CSV upload, answered with a per-row report
- GET /export/books: the caller's collection as CSV, or a template

Payload problems (not a CSV, too large, unreadable, no header) reject the
whole upload before any row is looked at.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from shelfkeeper.api.dependencies import get_current_principal, get_db, get_settings
from shelfkeeper.api.schemas import ErrorResponse, ImportResponse, ImportRowResponse
from shelfkeeper.config import Settings
from shelfkeeper.errors import InvalidPayload, PayloadTooLarge, UnsupportedMediaType
from shelfkeeper.transfer.exporter import export_filename, export_owned_records
from shelfkeeper.transfer.reconciler import BatchOutcome, BulkReconciler


router = APIRouter(tags=["import-export"])


# =============================================================================
# Configuration
# =============================================================================

CSV_EXTENSION = ".csv"

# Browsers and OS pickers label CSV files inconsistently
SUPPORTED_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "text/plain",
    "application/vnd.ms-excel",
    "application/octet-stream",
}


def check_upload_type(file: UploadFile) -> None:
    """
    Reject uploads that are not CSV files.

    Raises:
        UnsupportedMediaType: Wrong extension or content type
    """
    filename = (file.filename or "").lower()
    if not filename.endswith(CSV_EXTENSION):
        raise UnsupportedMediaType(detail=f"File '{file.filename}' does not have a .csv extension")

    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if content_type and content_type not in SUPPORTED_CONTENT_TYPES:
        raise UnsupportedMediaType(detail=f"Unsupported content type: {content_type}")


async def read_upload(file: UploadFile, max_bytes: int, limit_mb: int) -> bytes:
    """
    Read an upload, refusing anything over ``max_bytes``.

    Raises:
        PayloadTooLarge: File exceeds the limit
    """
    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise PayloadTooLarge(limit_mb)
    return content


def to_response(outcome: BatchOutcome) -> ImportResponse:
    return ImportResponse(
        total_rows=outcome.total_rows,
        created=outcome.created,
        duplicates=outcome.duplicates,
        rejected=outcome.rejected,
        rows=[
            ImportRowResponse(
                row=row.row,
                status=row.status.value,
                reason=row.reason,
                title=row.title,
                author=row.author,
            )
            for row in outcome.rows
        ],
    )


# =============================================================================
# Endpoints
# =============================================================================

@router.post(
    "/import/books",
    response_model=ImportResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Unreadable file or missing header"},
        413: {"model": ErrorResponse, "description": "File too large"},
        415: {"model": ErrorResponse, "description": "Not a CSV file"},
    },
)
async def import_books(
    file: Optional[UploadFile] = File(None, description="CSV file with a header row"),
    principal_id: str = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Import books from a CSV file.

    Valid new rows are added; duplicates and invalid rows are reported and
    skipped without affecting the rest of the file.
    """
    if file is None:
        raise InvalidPayload("No file uploaded", detail="Please select a CSV file to import")

    check_upload_type(file)
    payload = await read_upload(file, settings.max_upload_size_bytes, settings.max_upload_size_mb)
    logger.info(f"Importing {file.filename} ({len(payload)} bytes)")

    outcome = await BulkReconciler(db, principal_id).run(payload)
    return to_response(outcome)


@router.get(
    "/export/books",
    response_class=Response,
    responses={
        200: {"content": {"text/csv": {}}, "description": "CSV export or import template"},
    },
)
async def export_books(
    principal_id: str = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Download the caller's books as CSV; an empty collection gets the import template."""
    content = await export_owned_records(db, principal_id)
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )
