"""
Core pagination utilities for API endpoints.
"""
from typing import Any, Dict, List, Tuple
import math

from fastapi import Query
from sqlalchemy.orm import Query as SQLAlchemyQuery


class PageParams:
    """
    Page parameters for pagination.

    Attributes:
        page: Page number (1-indexed)
        limit: Number of items per page
    """
    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number"),
        limit: int = Query(10, ge=1, le=100, description="Items per page")
    ):
        self.page = page
        self.limit = limit
        self.offset = (page - 1) * limit


def paginate(query: SQLAlchemyQuery, page_params: PageParams) -> Tuple[List[Any], int]:
    """
    Apply offset and limit to a query.

    Args:
        query: Ordered SQLAlchemy query
        page_params: Pagination parameters

    Returns:
        Tuple of the items on the page and the total count
    """
    total = query.order_by(None).count()
    items = query.offset(page_params.offset).limit(page_params.limit).all()
    return items, total


def pagination_block(page_params: PageParams, total: int, total_key: str) -> Dict[str, Any]:
    """
    Build the pagination metadata returned alongside a page.

    Args:
        page_params: Pagination parameters
        total: Total number of matching items
        total_key: Name of the total field, e.g. ``totalUsers``
    """
    total_pages = math.ceil(total / page_params.limit) if total > 0 else 0
    return {
        "currentPage": page_params.page,
        "totalPages": total_pages,
        total_key: total,
        "hasNextPage": page_params.page < total_pages,
        "hasPrevPage": page_params.page > 1,
    }
