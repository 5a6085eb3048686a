"""Pagination utilities for API endpoints.

List endpoints are page-numbered and answer with a ``docs`` page plus
page metadata (``totalDocs``, ``totalPages``, ``hasNextPage``...).
"""

import math
from typing import Generic, TypeVar

from fastapi import Query
from pydantic import Field

from ..models.base import CamelModel

T = TypeVar("T")


class PaginationParams:
    """Common pagination parameters for dependency injection."""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number, starting at 1"),
        limit: int = Query(10, ge=1, le=100, description="Maximum results per page"),
        sort: str | None = Query(
            "-createdAt", description="Sort key, prefix with '-' for descending"
        ),
    ):
        self.page = page
        self.limit = limit
        self.sort = sort

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class Page(CamelModel, Generic[T]):
    """One page of results."""

    docs: list[T]
    total_docs: int = Field(..., description="Total number of results available")
    limit: int
    page: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def create(cls, items: list[T], params: PaginationParams) -> "Page[T]":
        """Slice ``items`` (the full, already-ordered result) into a page."""
        total = len(items)
        total_pages = max(1, math.ceil(total / params.limit))
        docs = items[params.offset : params.offset + params.limit]
        return cls(
            docs=docs,
            total_docs=total,
            limit=params.limit,
            page=params.page,
            total_pages=total_pages,
            has_next_page=params.page < total_pages,
            has_prev_page=params.page > 1,
        )
