"""
Owner scoping for book queries.

scope_to_owner is the only place the ownership predicate is written down.
OwnedBookRepository passes every statement it builds through it, so a book
owned by someone else can neither be read, changed, counted nor deleted, and
looks exactly like a book that does not exist.
"""

from typing import TypeVar

from sqlalchemy import Delete, Select, Update

from .models import Book

Statement = TypeVar("Statement", Select, Update, Delete)


def scope_to_owner(statement: Statement, principal_id: str) -> Statement:
    """
    Restrict a select/update/delete statement to books owned by a principal.

    Args:
        statement: Statement that touches the books table
        principal_id: Resolved identity of the caller

    Returns:
        The same statement with ``books.owner_id = principal_id`` added
    """
    if not principal_id:
        raise ValueError("principal_id is required to scope a book query")
    return statement.where(Book.owner_id == principal_id)
