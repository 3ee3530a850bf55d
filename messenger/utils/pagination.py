import math
from typing import Any, Dict, List, Optional, Tuple

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


def normalize_paging(page: Optional[int] = None, limit: Optional[int] = None) -> Tuple[int, int]:
    """Pages are 1-based; anything below 1 falls back to the default."""
    page = page if page and page > 0 else DEFAULT_PAGE
    limit = limit if limit and limit > 0 else DEFAULT_LIMIT
    return page, limit


def facet_stages(page: int, limit: int) -> List[Dict[str, Any]]:
    return [
        {
            "$facet": {
                "total_count": [{"$count": "total_count"}],
                "data": [{"$skip": (page - 1) * limit}, {"$limit": limit}],
            }
        },
        {"$unwind": "$total_count"},
        {"$project": {"total_count": "$total_count.total_count", "data": 1}},
    ]


def unpack_page(results: List[Dict[str, Any]], limit: int) -> Dict[str, Any]:
    # $unwind on an empty facet drops the only document
    if not results:
        return {"data": [], "total_count": 0, "total_pages": 0}
    total_count = int(results[0].get("total_count", 0))
    return {
        "data": results[0].get("data", []),
        "total_count": total_count,
        "total_pages": math.ceil(total_count / limit),
    }


async def aggregate_page(
    collection,
    pipeline: List[Dict[str, Any]],
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    page, limit = normalize_paging(page, limit)
    cursor = collection.aggregate(pipeline + facet_stages(page, limit))
    results = await cursor.to_list(length=1)
    return unpack_page(results, limit)
