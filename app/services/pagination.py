from __future__ import annotations

import math
from collections.abc import Sequence
from typing import TypeVar

from app.schemas.common import Pagination

T = TypeVar("T")


def paginate(items: Sequence[T], *, page: int, per_page: int) -> tuple[list[T], Pagination]:
    """Slice ``items`` for one page; ``lastPage`` is 0 when there is nothing to show."""
    current_page = max(page, 1)
    page_size = max(per_page, 1)
    total = len(items)
    offset = (current_page - 1) * page_size
    return list(items[offset : offset + page_size]), Pagination(
        total=total,
        per_page=page_size,
        current_page=current_page,
        last_page=math.ceil(total / page_size),
    )
