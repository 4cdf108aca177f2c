from typing import Any, Dict, Literal, Optional

from fastapi import Query


class ListQuery:
    """Query parameters shared by every listing route."""

    def __init__(
        self,
        search: Optional[str] = Query(None, description="Case-insensitive substring search"),
        fields: Optional[str] = Query(None, description="Comma-separated projection list"),
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
        sortBy: Optional[str] = Query(None),
        sortOrder: Optional[Literal["asc", "desc"]] = Query(None),
    ):
        self.search = search
        self.fields = fields
        self.page = page
        self.limit = limit
        self.sort_by = sortBy
        self.sort_order = sortOrder

    def as_kwargs(self) -> Dict[str, Any]:
        return {
            "search": self.search,
            "fields": self.fields,
            "page": self.page,
            "limit": self.limit,
            "sort_by": self.sort_by,
            "sort_order": self.sort_order,
        }
