"""
Pagination Schemas

Offset/limit envelope shared by the notification and audit-log listings.
"""

from typing import TypeVar, Generic, List
from pydantic import BaseModel, Field

T = TypeVar('T')


class PageParams(BaseModel):
    limit: int = Field(default=50, ge=1, le=200)
    offset: int = Field(default=0, ge=0)


class Page(BaseModel, Generic[T]):
    """A window of a larger result set"""
    items: List[T]
    total: int
    limit: int
    offset: int
    has_more: bool

    @classmethod
    def create(cls, items: List[T], total: int, limit: int, offset: int) -> "Page[T]":
        return cls(
            items=items,
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(items) < total,
        )
