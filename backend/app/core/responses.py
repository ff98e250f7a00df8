"""Standardized API response helpers.

Paginated list endpoints return a consistent envelope:
    {"items": [...], "total": <int>, "page": <int>, "page_size": <int>,
     "total_pages": <int>, "has_more": <bool>}

Single-item endpoints return the object directly (no wrapper).
"""

import math


def paginated_response(
    items: list,
    total: int,
    page: int = 1,
    page_size: int = 50,
    **extra,
) -> dict:
    """Wrap a page of results in the standard envelope.

    Args:
        items: The page of serialized items.
        total: Total count across all pages.
        page: 1-based page number.
        page_size: Page size requested.
        **extra: Additional top-level keys (e.g. a ``summary`` block).

    Returns:
        {"items", "total", "page", "page_size", "total_pages", "has_more", **extra}
    """
    response = {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": math.ceil(total / page_size) if page_size else 0,
        "has_more": (page - 1) * page_size + len(items) < total,
    }
    response.update(extra)
    return response
