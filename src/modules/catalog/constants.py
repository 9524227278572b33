"""Catalog domain constants."""

from decimal import Decimal

from django.db import models


class BookStatus(models.TextChoices):
    """Stored book status.  Out-of-stock is derived from ``stock``, never stored."""

    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class BookDisplayStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"
    OUT_OF_STOCK = "out_of_stock", "Out of stock"


class CategoryStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class StockLevel(models.TextChoices):
    OUT_OF_STOCK = "out_of_stock", "Out of stock"
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"


class SortOption(models.TextChoices):
    NAME_ASC = "name_asc", "Title A-Z"
    NAME_DESC = "name_desc", "Title Z-A"
    PRICE_ASC = "price_asc", "Price low to high"
    PRICE_DESC = "price_desc", "Price high to low"
    STOCK_ASC = "stock_asc", "Stock low to high"
    DATE_DESC = "date_desc", "Newest"


class StockAdjustmentMode(models.TextChoices):
    SET = "set", "Set"
    ADD = "add", "Add"
    SUBTRACT = "subtract", "Subtract"


MEDIUM_STOCK_CEILING = 50

BOOK_SEARCH_FIELDS = ("title", "author", "description")

DEFAULT_BEST_SELLER_LIMIT = 10

DEFAULT_TOP_RATED_LIMIT = 10
TOP_RATED_MIN_RATING = Decimal("4.00")
TOP_RATED_MIN_REVIEWS = 5
