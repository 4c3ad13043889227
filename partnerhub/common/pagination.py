"""Pagination and sorting for the report list endpoints."""

from __future__ import annotations

import math
from typing import Any, Generic, TypeVar

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class PaginationParams:
    """Inject as a FastAPI dependency for any list endpoint."""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number"),
        page_size: int = Query(10, ge=1, le=100, description="Items per page"),
        sort_by: str = Query("created_at", description="Column to sort by"),
        sort_order: str = Query("desc", pattern="^(asc|desc)$", description="asc or desc"),
        search: str | None = Query(None, description="Free-text search on name/description"),
    ):
        self.page = page
        self.page_size = page_size
        self.sort_by = sort_by
        self.sort_order = sort_order
        self.search = search

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class PaginatedResponse(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int

    @classmethod
    def build(cls, items: list[Any], total: int, params: PaginationParams) -> "PaginatedResponse[T]":
        return cls(
            items=items,
            total=total,
            page=params.page,
            page_size=params.page_size,
            total_pages=math.ceil(total / params.page_size) if total else 0,
        )


async def paginate(
    db: AsyncSession,
    query: Select,
    params: PaginationParams,
    model: Any,
) -> tuple[list[Any], int]:
    """Apply sorting and paging to a query and return (items, total_count)."""
    count_q = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_q)).scalar() or 0

    # Unknown columns fall back to creation order
    col = getattr(model, params.sort_by, None)
    if col is None:
        col = model.created_at
    query = query.order_by(col.asc() if params.sort_order == "asc" else col.desc())

    query = query.offset(params.offset).limit(params.page_size)

    result = await db.execute(query)
    items = list(result.scalars().all())
    return items, total
