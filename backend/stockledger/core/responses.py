"""Paginated list envelope.

``{"items": [...], "total": <int>, "skip": <int>, "limit": <int>, "has_more": <bool>}``
"""


def paginated_response(items: list, total: int, skip: int = 0, limit: int = 50) -> dict:
    """Wrap one page of a list in the standard envelope.

    Args:
        items: The page of serialized items.
        total: Total count across all pages.
        skip: Number of items skipped.
        limit: Page size requested.
    """
    return {
        "items": items,
        "total": total,
        "skip": skip,
        "limit": limit,
        "has_more": (skip + len(items)) < total,
    }
