"""
Count-then-fetch pagination.

1. Count phase: the count query runs with the same clause and parameters as
   the fetch.
2. Fetch phase: the data query runs with the clause plus two trailing
   placeholders for limit and offset.

The page number is never clamped; a page past the end returns no rows with
the real total.
"""

from typing import Any, List, Protocol, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import Integer

from order_reports.reports.catalog import ReportQuery, page_fragment
from order_reports.reports.composer import BoundValue, ComposedClause
from order_reports.reports.filters import Pagination
from order_reports.reports.schemas import Page

R = TypeVar("R", bound=BaseModel)


class QueryRunner(Protocol):
    async def count(self, query: ReportQuery, clause: ComposedClause) -> int: ...

    async def fetch(self, query: ReportQuery, clause: ComposedClause, page: str = "") -> List[Any]: ...


def total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit


class Paginator:
    def __init__(self, runner: QueryRunner):
        self.runner = runner

    async def paginate(
        self,
        count_query: ReportQuery,
        fetch_query: ReportQuery,
        clause: ComposedClause,
        pagination: Pagination,
        row_type: Type[R],
    ) -> Page[R]:
        total = await self.runner.count(count_query, clause)

        fetch_clause, (limit_marker, offset_marker) = clause.extend(
            BoundValue(pagination.limit, Integer()),
            BoundValue(pagination.offset, Integer()),
        )
        rows = await self.runner.fetch(
            fetch_query, fetch_clause, page=page_fragment(limit_marker, offset_marker)
        )

        return Page[row_type](
            rows=[row_type.model_validate(dict(row)) for row in rows],
            total=total,
            page=pagination.page,
            limit=pagination.limit,
            total_pages=total_pages(total, pagination.limit),
        )
