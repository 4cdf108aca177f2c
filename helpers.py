import math
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pymongo import ASCENDING, DESCENDING

from errors import BadRequestError

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lowercase, collapse every non-alphanumeric run to one hyphen, trim hyphens."""
    return _NON_ALNUM.sub("-", name.lower()).strip("-")


def parse_fields(fields: Optional[str], allowed: Iterable[str]) -> Optional[List[str]]:
    """Split a comma-separated projection list and validate it against ``allowed``."""
    if not fields:
        return None
    requested = [f.strip() for f in fields.split(",") if f.strip()]
    if not requested:
        return None
    allowed = set(allowed)
    invalid = [f for f in requested if f not in allowed]
    if invalid:
        raise BadRequestError(
            f"Invalid field(s) requested. Valid fields are: {', '.join(sorted(allowed))}",
            {"invalid": invalid},
        )
    return requested


def projection(fields: Optional[Sequence[str]]) -> Optional[Dict[str, int]]:
    if not fields:
        return None
    return {f: 1 for f in fields}


def search_filter(search: Optional[str], search_fields: Sequence[str]) -> Dict[str, Any]:
    """Case-insensitive substring match on any of ``search_fields``."""
    if not search:
        return {}
    pattern = re.escape(search)
    return {"$or": [{field: {"$regex": pattern, "$options": "i"}} for field in search_fields]}


def sort_spec(sort_by: str, sort_order: str) -> List[tuple]:
    direction = DESCENDING if sort_order == "desc" else ASCENDING
    # _id breaks ties so pages never overlap
    return [(sort_by, direction), ("_id", direction)]


def pagination(total: int, page: int, limit: int) -> Dict[str, int]:
    return {
        "items": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


def envelope(status_code: int, message: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Success response body shared by every route."""
    return {"statusCode": status_code, "message": message, "payload": payload or {}}
