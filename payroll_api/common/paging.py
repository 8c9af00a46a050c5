# payroll_api/common/paging.py
from flask import request

DEFAULT_PAGE = 1
DEFAULT_SIZE = 20
MAX_SIZE = 100


def _int_arg(name, default):
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


def page_limit():
    page = max(_int_arg("page", DEFAULT_PAGE), 1)
    size = max(1, min(_int_arg("size", DEFAULT_SIZE), MAX_SIZE))
    return page, size


def paginate(query):
    """Apply ?page=&size= to a query. Returns (rows, meta)."""
    page, size = page_limit()
    total = query.count()
    rows = query.offset((page - 1) * size).limit(size).all()
    return rows, {"page": page, "size": size, "total": total}
