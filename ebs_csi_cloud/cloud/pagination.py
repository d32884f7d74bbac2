"""Drains paginated describe calls."""

from typing import Any, Callable, Dict, List, Optional, Tuple

Page = Tuple[List[Any], Optional[str]]


def paginate(request: Dict[str, Any], fetch: Callable[[Dict[str, Any]], Page]) -> List[Any]:
    """Fetch every page of a describe call.

    Args:
        request: Initial request parameters (not modified)
        fetch: Callable returning ``(items, next_token)`` for one request

    Returns:
        Items of all pages, concatenated in fetch order
    """
    request = dict(request)
    items: List[Any] = []
    while True:
        page, next_token = fetch(request)
        items.extend(page)
        if not next_token:
            return items
        request["NextToken"] = next_token
