"""
Transfer Module for Shelfkeeper

CSV import and export of book collections:
- parse: upload bytes -> raw rows
- validate_row: raw row -> Valid | Invalid
- BulkReconciler: classify and commit, with a per-row report
- export_owned_records: collection (or template) -> CSV text
"""

from shelfkeeper.transfer.parser import RawRow, parse
from shelfkeeper.transfer.validation import (
    BookCandidate,
    Invalid,
    Valid,
    validate_row,
)
from shelfkeeper.transfer.reconciler import (
    BatchOutcome,
    BulkReconciler,
    Duplicate,
    New,
    RowOutcome,
    RowStatus,
    classify,
)
from shelfkeeper.transfer.exporter import (
    EXPORT_HEADER,
    export_filename,
    export_owned_records,
)

__all__ = [
    # Parsing
    "RawRow",
    "parse",
    # Validation
    "BookCandidate",
    "Valid",
    "Invalid",
    "validate_row",
    # Reconciliation
    "BatchOutcome",
    "BulkReconciler",
    "Duplicate",
    "New",
    "RowOutcome",
    "RowStatus",
    "classify",
    # Export
    "EXPORT_HEADER",
    "export_filename",
    "export_owned_records",
]
