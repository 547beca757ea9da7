from __future__ import annotations

from flask import current_app, request


def page_args() -> tuple[int, int]:
    """Read ?page=&limit= from the request, clamped to the configured bounds."""
    default_limit = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    max_limit = current_app.config.get("MAX_PAGE_SIZE", 100)
    page = request.args.get("page", 1, type=int) or 1
    limit = request.args.get("limit", default_limit, type=int) or default_limit
    return max(page, 1), min(max(limit, 1), max_limit)


def paginate(query, page: int, limit: int) -> tuple[list, dict]:
    """
    Apply offset/limit to a query.

    Returns (rows, pagination) where pagination carries total, page, limit
    and total_pages.
    """
    total = query.order_by(None).count()
    total_pages = (total + limit - 1) // limit if total > 0 else 0
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages,
    }
