import math
from typing import Any, Dict, List

MAX_LIMIT = 100


def clamp(page: int, limit: int) -> tuple:
    page = max(1, int(page or 1))
    limit = max(1, min(MAX_LIMIT, int(limit or 10)))
    return page, limit


def page_payload(items: List[Any], total: int, page: int, limit: int) -> Dict[str, Any]:
    return {
        "items": items,
        "total_items": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "page": page,
        "limit": limit,
    }
