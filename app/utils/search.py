"""
Text and amount filtering over store records.

The store narrows by user, date range, type and category; everything else a
search asks for is applied here on the returned dicts.
"""
import math
from typing import Any, Dict, Iterable, List, Optional

Record = Dict[str, Any]

MIN_QUERY_LENGTH = 2

TRANSACTION_TEXT_FIELDS = ("description", "notes")
BUDGET_TEXT_FIELDS = ("name", "category")
GOAL_TEXT_FIELDS = ("name", "description")


def text_matches(record: Record, needle: str, fields: Iterable[str]) -> bool:
    """Case-insensitive substring match against any of ``fields``."""
    needle = needle.strip().lower()
    return any(needle in str(record.get(field) or "").lower() for field in fields)


def filter_transactions(
    transactions: Iterable[Record],
    text: Optional[str] = None,
    min_amount: Optional[float] = None,
    max_amount: Optional[float] = None,
    payment_method: Optional[str] = None,
) -> List[Record]:
    results = []
    for t in transactions:
        amount = float(t.get("amount", 0))
        if min_amount is not None and amount < min_amount:
            continue
        if max_amount is not None and amount > max_amount:
            continue
        if payment_method and t.get("payment_method") != payment_method:
            continue
        if text and not text_matches(t, text, TRANSACTION_TEXT_FIELDS):
            continue
        results.append(t)
    return results


def sort_transactions(transactions: List[Record], sort_by: str = "date", sort_order: str = "desc") -> List[Record]:
    reverse = sort_order == "desc"
    if sort_by == "amount":
        return sorted(transactions, key=lambda t: (float(t.get("amount", 0)), t["transaction_id"]), reverse=reverse)
    # The sort key starts with the ISO date, so it orders by date.
    return sorted(transactions, key=lambda t: t["transaction_id"], reverse=reverse)


def paginate(items: List[Record], page: int, limit: int) -> Dict[str, Any]:
    start = (page - 1) * limit
    return {
        "items": items[start:start + limit],
        "total": len(items),
        "page": page,
        "pages": math.ceil(len(items) / limit) if items else 0,
    }
