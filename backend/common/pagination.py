"""Page-based pagination for the list endpoints.

``PaginationParams`` is the query-string dependency; ``paginate`` runs a
``Select`` of one mapped model and wraps the page in the ``{"data", "meta"}``
envelope that routers return.
"""

from __future__ import annotations

import math
from typing import Any, Generic, Optional, Sequence, TypeVar

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy import Select, func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from backend.common.filters import apply_sorting

T = TypeVar("T")


class PaginationParams:
    """Inject via ``Depends()`` on any list endpoint."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1, description="Page number (1-indexed)"),
        page_size: int = Query(
            default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE,
            description=f"Items per page (max {MAX_PAGE_SIZE})",
        ),
        sort: Optional[str] = Query(
            default=None,
            description='Comma-separated fields; prefix "-" for DESC (e.g. "last_name,-hire_date")',
        ),
    ) -> None:
        self.page = page
        self.page_size = page_size
        self.sort = sort

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class PaginationMeta(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def for_page(cls, params: PaginationParams, total: int) -> PaginationMeta:
        total_pages = math.ceil(total / params.page_size) if total else 0
        return cls(
            page=params.page,
            page_size=params.page_size,
            total=total,
            total_pages=total_pages,
            has_next=params.page < total_pages,
            has_prev=params.page > 1,
        )


class PaginatedResponse(BaseModel, Generic[T]):
    data: Sequence[T]
    meta: PaginationMeta


async def paginate(
    session: AsyncSession,
    query: Select,
    params: PaginationParams,
    *,
    model: Any,
) -> PaginatedResponse:
    """
    Return one page of *query*, which must select *model* rows.

    ``params.sort`` follows any ORDER BY already on *query*, and the
    primary key comes last so rows with equal sort values keep a stable
    position across pages.

    Raises:
        ValidationException: if ``params.sort`` names an unknown column.
    """
    total: int = (
        await session.execute(
            select(func.count()).select_from(query.order_by(None).subquery())
        )
    ).scalar_one()

    query = apply_sorting(query, model, params.sort)
    query = query.order_by(*inspect(model).primary_key)

    rows = (
        await session.execute(query.offset(params.offset).limit(params.page_size))
    ).scalars().all()

    return PaginatedResponse(data=rows, meta=PaginationMeta.for_page(params, total))
