import math

from flask import current_app, request


def page_args():
    """Read ?page=&limit= with the configured default and cap."""
    default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    max_size = current_app.config.get("MAX_PAGE_SIZE", 100)

    page = request.args.get("page", type=int) or 1
    page_size = request.args.get("limit", type=int) or default_size
    return max(page, 1), max(1, min(page_size, max_size))


def pagination_meta(page: int, page_size: int, total: int) -> dict:
    return {
        "pageIndex": page,
        "pageSize": page_size,
        "totalPages": math.ceil(total / page_size) if page_size else 0,
        "totalResults": total,
    }
