from __future__ import annotations

import math

from flask import request

from extensions import db

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def paginate(stmt):
    """Run ``stmt`` through Flask-SQLAlchemy's paginator using ``?page=&limit=``."""
    page = max(request.args.get("page", 1, type=int), 1)
    limit = min(max(request.args.get("limit", DEFAULT_PAGE_SIZE, type=int), 1), MAX_PAGE_SIZE)
    return db.paginate(stmt, page=page, per_page=limit, max_per_page=MAX_PAGE_SIZE, error_out=False)


def pagination_dict(result) -> dict:
    return {
        "page": result.page,
        "limit": result.per_page,
        "total": result.total,
        "totalPages": math.ceil(result.total / result.per_page) if result.per_page else 0,
    }
