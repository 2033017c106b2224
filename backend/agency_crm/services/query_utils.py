"""
Persistence helpers - column values from request schemas, sorting and
pagination for list endpoints
"""
from enum import Enum
from typing import Iterable, Optional, Tuple, List
from pydantic import BaseModel
from sqlalchemy.orm import Query

DEFAULT_SORT = "-created_at"


def apply_sort(query: Query, model, sort: Optional[str]) -> Query:
    """
    Apply a comma-separated sort string such as "-created_at,name".
    A leading "-" sorts descending.
    """
    columns = model.__table__.columns
    for field in (sort or DEFAULT_SORT).split(","):
        field = field.strip()
        if not field:
            continue
        descending = field.startswith("-")
        name = field.lstrip("-")
        if name not in columns:
            raise ValueError(f"Cannot sort by unknown field '{name}'")
        column = getattr(model, name)
        query = query.order_by(column.desc() if descending else column.asc())
    return query


def paginate(query: Query, page: int = 1, limit: int = 10) -> Tuple[List, int, dict]:
    """Return (items, total, pagination) for a 1-based page"""
    page = max(page, 1)
    limit = max(limit, 1)
    total = query.order_by(None).count()
    start = (page - 1) * limit
    items = query.offset(start).limit(limit).all()

    pagination = {}
    if page * limit < total:
        pagination["next"] = {"page": page + 1, "limit": limit}
    if start > 0:
        pagination["prev"] = {"page": page - 1, "limit": limit}

    return items, total, pagination


def page_response(items: List, total: int, pagination: dict) -> dict:
    return {
        "count": len(items),
        "total": total,
        "pagination": pagination,
        "data": items,
    }


def column_values(data: BaseModel, exclude_unset: bool = False, nullable: Iterable[str] = ()) -> dict:
    """
    Dump a request schema into column values.

    Enum members become their values. With exclude_unset, an explicit null is
    only kept for the fields listed in `nullable`.
    """
    values = data.model_dump(exclude_unset=exclude_unset)
    nullable = set(nullable)
    result = {}
    for key, value in values.items():
        if value is None and exclude_unset and key not in nullable:
            continue
        result[key] = value.value if isinstance(value, Enum) else value
    return result
