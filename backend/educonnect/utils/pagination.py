"""Page/limit handling shared by every list endpoint."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from sqlalchemy import func
from sqlmodel import Session, select

from ..errors import ValidationError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass
class Page:
    items: list
    page: int
    limit: int
    total_count: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit) if self.limit else 0

    def meta(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "totalCount": self.total_count,
            "totalPages": self.total_pages,
        }


def check_page_args(page: int, limit: int) -> None:
    """Raise `ValidationError` unless `page >= 1` and `1 <= limit <= MAX_LIMIT`."""
    details = []
    if not isinstance(page, int) or page < 1:
        details.append({"field": "page", "message": "must be an integer >= 1"})
    if not isinstance(limit, int) or not 1 <= limit <= MAX_LIMIT:
        details.append({"field": "limit", "message": f"must be an integer between 1 and {MAX_LIMIT}"})
    if details:
        raise ValidationError("invalid pagination parameters", details=details)


def paginate_query(session: Session, stmt, page: int, limit: int) -> Page:
    """Run `stmt` for one page and count the full filtered result."""
    check_page_args(page, limit)
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = session.exec(count_stmt).one()
    rows = session.exec(stmt.offset((page - 1) * limit).limit(limit)).all()
    return Page(items=list(rows), page=page, limit=limit, total_count=total)


def paginate_list(items: Sequence, page: int, limit: int) -> Page:
    """Slice an in-memory, already ordered sequence."""
    check_page_args(page, limit)
    start = (page - 1) * limit
    return Page(items=list(items[start:start + limit]), page=page, limit=limit, total_count=len(items))
