"""Page/offset helpers shared by the ledger, claim and inbox listings."""

from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

T = TypeVar("T")


@dataclass
class PaginationParams:
    """A 1-based page window, clamped to sane bounds."""

    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        self.page = max(self.page, 1)
        self.page_size = min(max(self.page_size, 1), MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


async def paginate_query(
    db: AsyncSession,
    query: Select,
    params: PaginationParams,
) -> tuple[list[T], int]:
    """Run one page of an ordered select and count every matching row.

    Returns (items, total); total ignores the page window.
    """
    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    page = await db.execute(query.offset(params.offset).limit(params.page_size))
    return list(page.scalars().all()), total
