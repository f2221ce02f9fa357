"""
Search Router
Global text search across transactions, budgets and goals, plus a
multi-filter transaction search
"""
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from app.core.errors import ValidationError
from app.models.budget import BudgetInDB, BudgetPublic
from app.models.goal import GoalInDB, GoalPublic
from app.models.transaction import TransactionPublic, TransactionType
from app.routers.deps import get_current_user_id, get_store, ok
from app.utils.date_ranges import parse_date_bound
from app.utils.search import (
    BUDGET_TEXT_FIELDS,
    GOAL_TEXT_FIELDS,
    MIN_QUERY_LENGTH,
    filter_transactions,
    paginate,
    sort_transactions,
    text_matches,
)

router = APIRouter()
logger = logging.getLogger(__name__)

SearchScope = Literal["all", "transactions", "budgets", "goals"]


@router.get("/")
def global_search(
    q: str = "",
    type: SearchScope = "all",
    limit: int = Query(20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """Match transactions by description or notes, budgets by name or category, goals by name or description."""
    query = q.strip()
    if len(query) < MIN_QUERY_LENGTH:
        raise ValidationError(f"Search query must be at least {MIN_QUERY_LENGTH} characters")

    results = {"transactions": [], "budgets": [], "goals": []}

    if type in ("all", "transactions"):
        matches = sort_transactions(filter_transactions(store.find_transactions(user_id), text=query))
        results["transactions"] = [TransactionPublic(**t).model_dump(mode="json") for t in matches[:limit]]

    if type in ("all", "budgets"):
        matches = [b for b in store.list_budgets(user_id) if text_matches(b, query, BUDGET_TEXT_FIELDS)]
        results["budgets"] = [
            BudgetPublic.from_budget(BudgetInDB(**b)).model_dump(mode="json") for b in matches[:limit]
        ]

    if type in ("all", "goals"):
        matches = [g for g in store.list_goals(user_id) if text_matches(g, query, GOAL_TEXT_FIELDS)]
        results["goals"] = [GoalPublic.from_goal(GoalInDB(**g)).model_dump(mode="json") for g in matches[:limit]]

    total = sum(len(rows) for rows in results.values())
    logger.info(f"Search '{query}' ({type}) for user {user_id}: {total} results")
    return ok({"query": query, "total_results": total, "results": results})


@router.get("/transactions/advanced")
def advanced_transaction_search(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    min_amount: Optional[float] = Query(None, ge=0),
    max_amount: Optional[float] = Query(None, ge=0),
    type: Optional[TransactionType] = None,
    category: Optional[str] = None,
    payment_method: Optional[str] = None,
    description: Optional[str] = None,
    sort_by: Literal["date", "amount"] = "date",
    sort_order: Literal["asc", "desc"] = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """Every filter is optional; the ones given are combined with AND."""
    start = parse_date_bound(start_date) if start_date else None
    end = parse_date_bound(end_date, end=True) if end_date else None
    if start and end and end < start:
        raise ValidationError("End date must be after start date")
    if min_amount is not None and max_amount is not None and max_amount < min_amount:
        raise ValidationError("max_amount must be greater than or equal to min_amount")

    transactions = store.find_transactions(user_id, start, end, type=type, category=category)
    matches = filter_transactions(
        transactions,
        text=description,
        min_amount=min_amount,
        max_amount=max_amount,
        payment_method=payment_method,
    )
    page_data = paginate(sort_transactions(matches, sort_by, sort_order), page, limit)
    return ok({
        "transactions": [TransactionPublic(**t).model_dump(mode="json") for t in page_data["items"]],
        "count": len(page_data["items"]),
        "total": page_data["total"],
        "page": page_data["page"],
        "pages": page_data["pages"],
    })
