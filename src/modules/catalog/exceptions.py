"""Catalog domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import InvalidArgument, NotFound


class BookNotFound(NotFound):
    """The book does not exist or has been soft-deleted."""

    code = "book_not_found"


class CategoryNotFound(NotFound):
    code = "category_not_found"


class BookUnavailable(InvalidArgument):
    """The book exists but is inactive and cannot be sold."""

    code = "book_unavailable"


class CategoryInUse(InvalidArgument):
    """The category is still referenced by books."""

    code = "category_in_use"


class CategoryAlreadyExists(InvalidArgument):
    code = "category_already_exists"
